"""Presentation layer: HTTP API"""
