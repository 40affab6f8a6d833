# File: src/mallpark/main.py
"""
Main application entry point for the Mall Parking System
Wires storage, events and services into the HTTP API and serves it.
"""

import logging
import os
import sys
from typing import Optional

import uvicorn
from fastapi import FastAPI

from .application.parking_service import ParkingService
from .application.reporting_service import ReportingService
from .infrastructure.config import Settings
from .infrastructure.messaging import ALL_EVENTS, EventBus, LoggingEventHandler, RedisEventPublisher
from .infrastructure.repositories import RepositoryFactory
from .presentation.api import create_app


def setup_logging(settings: Settings) -> logging.Logger:
    """Setup application logging configuration"""
    log_dir = settings.log_dir
    if not os.path.exists(log_dir):
        os.makedirs(log_dir)

    logging.basicConfig(
        level=getattr(logging, settings.log_level),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=[
            logging.FileHandler(os.path.join(log_dir, 'mallpark.log')),
            logging.StreamHandler(sys.stdout)
        ]
    )
    return logging.getLogger(__name__)


def build_event_bus(settings: Settings) -> EventBus:
    """Audit log always; redis forwarding when configured"""
    event_bus = EventBus()
    event_bus.subscribe(ALL_EVENTS, LoggingEventHandler())

    if settings.redis_url:
        event_bus.subscribe(ALL_EVENTS, RedisEventPublisher(settings.redis_url, settings.event_channel))

    return event_bus


def build_application(settings: Optional[Settings] = None) -> FastAPI:
    """Initialize all application components with dependency injection"""
    settings = settings or Settings.from_env()
    logger = logging.getLogger(__name__)

    # 1. Storage (Data Access Layer)
    uow_factory = RepositoryFactory.create_sqlalchemy_uow_factory(settings.database_url)
    logger.info(f"Storage initialized: {settings.database_url.split('@')[-1]}")

    # 2. Events
    event_bus = build_event_bus(settings)

    # 3. Services (Application Layer)
    parking_service = ParkingService(uow_factory, event_bus=event_bus)
    reporting_service = ReportingService(uow_factory)

    if settings.seed_on_startup:
        parking_service.ensure_defaults()

    return create_app(parking_service, reporting_service, settings)


def main():
    """Main entry point"""
    settings = Settings.from_env()
    logger = setup_logging(settings)
    logger.info("Starting Mall Parking Management System...")

    try:
        app = build_application(settings)
    except Exception as e:
        logger.error(f"Failed to initialize components: {str(e)}")
        raise

    uvicorn.run(app, host=settings.host, port=settings.port, log_config=None)


if __name__ == "__main__":
    main()
