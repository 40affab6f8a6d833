# File: src/mallpark/presentation/api.py
"""
Mall Parking REST API (FastAPI)

REST Endpoints:
- /api/slots     -> slot board, dashboard counts, operator status, seeding
- /api/sessions  -> check-in, active session search, check-out
- /api/reports   -> revenue and utilization reports
- /api/pricing   -> tariff maintenance

Business-rule failures are answered with {"code", "msg"}: 404 for a
missing slot or session, 400 for everything else, including malformed
requests.
"""

from datetime import date
from typing import List, Optional
import logging

from fastapi import APIRouter, Body, Depends, FastAPI, Query, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse

from ..application.dtos import (
    CheckInRequestDTO, CheckInResponseDTO, CheckOutRequestDTO,
    CheckOutResponseDTO, DailyRevenueDTO, DashboardCountsDTO,
    DayPassUpdateDTO, HourlyPricingUpdateDTO, HourlyRevenueDTO, PeakHourDTO,
    PricingDTO, RevenueSummaryDTO, SeedResultDTO, SessionDTO, SlotDTO,
    SlotStatusUpdateDTO, SlotUsageDTO
)
from ..application.parking_service import ParkingService
from ..application.reporting_service import ReportingService
from ..domain.exceptions import NotFoundError, ParkingError
from ..domain.models import SlotStatus, SlotType
from ..infrastructure.config import Settings

logger = logging.getLogger(__name__)


# ----------------------------------------
# Dependencies
# ----------------------------------------

def get_parking_service(request: Request) -> ParkingService:
    return request.app.state.parking_service


def get_reporting_service(request: Request) -> ReportingService:
    return request.app.state.reporting_service


# ----------------------------------------
# Slots
# ----------------------------------------

slots_router = APIRouter(prefix="/api/slots", tags=["slots"])


@slots_router.get("", response_model=List[SlotDTO])
def list_slots(
    slot_type: Optional[SlotType] = Query(default=None, alias="slotType"),
    slot_status: Optional[SlotStatus] = Query(default=None, alias="status"),
    service: ParkingService = Depends(get_parking_service),
) -> List[SlotDTO]:
    return service.list_slots(slot_type=slot_type, status=slot_status)


@slots_router.get("/dashboard-counts", response_model=DashboardCountsDTO)
def dashboard_counts(service: ParkingService = Depends(get_parking_service)) -> DashboardCountsDTO:
    return service.dashboard_counts()


@slots_router.put("/{slot_number}/status", response_model=SlotDTO)
def update_slot_status(
    slot_number: str,
    update: SlotStatusUpdateDTO,
    service: ParkingService = Depends(get_parking_service),
) -> SlotDTO:
    return service.update_slot_status(slot_number, update.status)


@slots_router.post("/seed", response_model=SeedResultDTO, status_code=status.HTTP_201_CREATED)
def seed_slots(service: ParkingService = Depends(get_parking_service)) -> SeedResultDTO:
    return service.seed_slots()


# ----------------------------------------
# Sessions
# ----------------------------------------

sessions_router = APIRouter(prefix="/api/sessions", tags=["sessions"])


@sessions_router.post("/checkin", response_model=CheckInResponseDTO, status_code=status.HTTP_201_CREATED)
def check_in(
    request: CheckInRequestDTO,
    service: ParkingService = Depends(get_parking_service),
) -> CheckInResponseDTO:
    return service.check_in(request)


@sessions_router.get("/search", response_model=SessionDTO)
def search_session(
    number_plate: str = Query(min_length=1, alias="numberPlate"),
    service: ParkingService = Depends(get_parking_service),
) -> SessionDTO:
    return service.search_active_session(number_plate)


@sessions_router.put("/checkout/{session_id}", response_model=CheckOutResponseDTO)
def check_out(
    session_id: str,
    request: Optional[CheckOutRequestDTO] = Body(default=None),
    service: ParkingService = Depends(get_parking_service),
) -> CheckOutResponseDTO:
    exit_time = request.exit_time if request is not None else None
    return service.check_out(session_id, exit_time=exit_time)


# ----------------------------------------
# Reports
# ----------------------------------------

reports_router = APIRouter(prefix="/api/reports", tags=["reports"])


@reports_router.get("/revenue/summary", response_model=RevenueSummaryDTO)
def revenue_summary(reports: ReportingService = Depends(get_reporting_service)) -> RevenueSummaryDTO:
    return reports.revenue_summary()


@reports_router.get("/revenue/daily", response_model=List[HourlyRevenueDTO])
def daily_revenue(
    day: date = Query(alias="date"),
    reports: ReportingService = Depends(get_reporting_service),
) -> List[HourlyRevenueDTO]:
    return reports.daily_revenue(day)


@reports_router.get("/revenue/monthly", response_model=List[DailyRevenueDTO])
def monthly_revenue(
    year: int = Query(ge=1, le=9999),
    month: int = Query(ge=1, le=12),
    reports: ReportingService = Depends(get_reporting_service),
) -> List[DailyRevenueDTO]:
    return reports.monthly_revenue(year, month)


@reports_router.get("/utilization/peak-hours", response_model=List[PeakHourDTO])
def peak_hours(
    day: Optional[date] = Query(default=None, alias="date"),
    reports: ReportingService = Depends(get_reporting_service),
) -> List[PeakHourDTO]:
    return reports.peak_hours(day)


@reports_router.get("/utilization/slot-usage", response_model=List[SlotUsageDTO])
def slot_usage(
    period_days: Optional[int] = Query(default=None, ge=0, alias="periodDays"),
    reports: ReportingService = Depends(get_reporting_service),
) -> List[SlotUsageDTO]:
    return reports.slot_utilization(period_days)


# ----------------------------------------
# Pricing
# ----------------------------------------

pricing_router = APIRouter(prefix="/api/pricing", tags=["pricing"])


@pricing_router.get("", response_model=PricingDTO)
def get_pricing(service: ParkingService = Depends(get_parking_service)) -> PricingDTO:
    return service.get_pricing()


@pricing_router.put("/hourly", response_model=PricingDTO)
def update_hourly_pricing(
    request: HourlyPricingUpdateDTO,
    service: ParkingService = Depends(get_parking_service),
) -> PricingDTO:
    return service.update_hourly_pricing(request)


@pricing_router.put("/day-pass", response_model=PricingDTO)
def update_day_pass(
    request: DayPassUpdateDTO,
    service: ParkingService = Depends(get_parking_service),
) -> PricingDTO:
    return service.update_day_pass_rate(request)


# ----------------------------------------
# Error mapping
# ----------------------------------------

async def parking_error_handler(request: Request, exc: ParkingError) -> JSONResponse:
    status_code = status.HTTP_404_NOT_FOUND if isinstance(exc, NotFoundError) else status.HTTP_400_BAD_REQUEST
    return JSONResponse(status_code=status_code, content=exc.to_dict())


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    messages = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error.get("loc", ()) if part != "body")
        messages.append(f"{location}: {error.get('msg')}" if location else str(error.get("msg")))
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"code": "ValidationError", "msg": "; ".join(messages)},
    )


async def value_error_handler(request: Request, exc: ValueError) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"code": "ValidationError", "msg": str(exc)},
    )


# ----------------------------------------
# Application
# ----------------------------------------

def create_app(
    parking_service: ParkingService,
    reporting_service: ReportingService,
    settings: Optional[Settings] = None,
) -> FastAPI:
    settings = settings or Settings()

    app = FastAPI(title="Mall Parking Management API", version="1.0.0")
    app.state.parking_service = parking_service
    app.state.reporting_service = reporting_service
    app.state.settings = settings

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials="*" not in settings.cors_origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(ParkingError, parking_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(ValueError, value_error_handler)

    @app.get("/", response_class=PlainTextResponse)
    def root() -> str:
        return "Mall Parking Management API is running"

    app.include_router(slots_router)
    app.include_router(sessions_router)
    app.include_router(reports_router)
    app.include_router(pricing_router)

    logger.debug(f"API created with CORS origins {settings.cors_origins}")
    return app
