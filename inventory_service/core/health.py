"""
Health, readiness and metrics endpoints.

Response bodies follow the "Health Check Response Format for HTTP APIs"
draft: an overall ``status`` of pass/warn/fail plus one entry per checked
component under ``checks``.
"""

from fastapi import APIRouter, status
from fastapi.responses import JSONResponse
from sqlalchemy import inspect
from typing import Dict, Any
from datetime import datetime
from enum import Enum
from pathlib import Path
import os
import time
import psutil
import logging

from inventory_service.infrastructure.db import Database

logger = logging.getLogger(__name__)


def _now() -> str:
    return datetime.utcnow().isoformat() + "Z"


class HealthStatus(str, Enum):
    PASS = "pass"
    FAIL = "fail"
    WARN = "warn"


class ServiceHealth:
    """Probe the store and the upload directory the service depends on."""

    def __init__(self, service_name: str, database: Database, upload_dir: str, version: str = "1.0.0"):
        self.service_name = service_name
        self.database = database
        self.upload_dir = Path(upload_dir)
        self.version = version
        self.start_time = time.time()
        self.checks_performed = 0
        self.last_check_time = None

    def create_health_router(self) -> APIRouter:
        router = APIRouter(tags=["health"])

        @router.get("/health", status_code=status.HTTP_200_OK)
        async def health_check() -> Dict[str, Any]:
            """Liveness summary, no dependency checks."""
            return {
                "status": HealthStatus.PASS,
                "service": self.service_name,
                "version": self.version,
                "releaseId": os.getenv("RELEASE_ID", "unknown"),
                "timestamp": _now()
            }

        @router.get("/health/live", status_code=status.HTTP_200_OK)
        async def liveness() -> Dict[str, Any]:
            return {"status": "alive"}

        @router.get("/health/ready")
        def readiness() -> JSONResponse:
            """Readiness probe: 503 unless every dependency passes or warns."""
            checks = self.perform_readiness_checks()
            overall_status = self.calculate_overall_status(checks)
            status_code = status.HTTP_503_SERVICE_UNAVAILABLE if overall_status == HealthStatus.FAIL else status.HTTP_200_OK

            return JSONResponse(status_code=status_code, content={
                "status": overall_status,
                "version": self.version,
                "releaseId": os.getenv("RELEASE_ID", "unknown"),
                "checks": checks,
                "serviceId": self.service_name,
                "description": f"{self.service_name} microservice",
                "timestamp": _now()
            })

        @router.get("/health/startup")
        def startup():
            checks = self.perform_startup_checks()
            status_val = self.calculate_overall_status(checks)

            if status_val == HealthStatus.FAIL:
                return JSONResponse(
                    status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                    content={"status": "starting", "checks": checks}
                )
            return {"status": "started", "checks": checks}

        @router.get("/metrics")
        async def metrics() -> Dict[str, Any]:
            process = psutil.Process()
            memory = process.memory_info()

            return {
                "service": self.service_name,
                "version": self.version,
                "uptime_seconds": time.time() - self.start_time,
                "checks_performed": self.checks_performed,
                "timestamp": _now(),
                "system": {
                    "memory_rss_bytes": memory.rss,
                    "memory_vms_bytes": memory.vms,
                    "cpu_percent": process.cpu_percent(),
                    "num_threads": process.num_threads()
                }
            }

        return router

    def perform_readiness_checks(self) -> Dict[str, Dict[str, Any]]:
        self.checks_performed += 1
        self.last_check_time = time.time()

        return {
            "database:connectivity": self._check_database(),
            "storage:uploads": self._check_upload_dir(),
            "storage:disk_space": self._check_disk_space(),
            "system:memory": self._check_memory(),
        }

    def perform_startup_checks(self) -> Dict[str, Dict[str, Any]]:
        return {
            "database:schema": self._check_schema(),
            "storage:uploads": self._check_upload_dir(),
        }

    def _check_database(self) -> Dict[str, Any]:
        try:
            start_time = time.time()
            self.database.ping()
            response_time = (time.time() - start_time) * 1000
            return {
                "status": HealthStatus.PASS,
                "componentType": "datastore",
                "observedValue": f"{response_time:.2f}",
                "observedUnit": "ms",
                "time": _now()
            }
        except Exception as e:
            logger.error(f"Database health check failed: {e}")
            return {
                "status": HealthStatus.FAIL,
                "componentType": "datastore",
                "output": str(e),
                "time": _now()
            }

    def _check_upload_dir(self) -> Dict[str, Any]:
        if self.upload_dir.is_dir() and os.access(self.upload_dir, os.W_OK):
            return {"status": HealthStatus.PASS, "componentType": "storage", "time": _now()}
        return {
            "status": HealthStatus.FAIL,
            "componentType": "storage",
            "output": f"Upload directory {self.upload_dir} is missing or not writable",
            "time": _now()
        }

    def _check_disk_space(self) -> Dict[str, Any]:
        try:
            target = self.upload_dir if self.upload_dir.exists() else Path(".")
            disk = psutil.disk_usage(str(target))
            free_gb = disk.free / (1024 ** 3)

            if free_gb < 1:
                status_val = HealthStatus.FAIL
            elif free_gb < 5:
                status_val = HealthStatus.WARN
            else:
                status_val = HealthStatus.PASS

            return {
                "status": status_val,
                "componentType": "system",
                "observedValue": f"{free_gb:.2f}",
                "observedUnit": "GB",
                "time": _now()
            }
        except Exception as e:
            return {
                "status": HealthStatus.WARN,
                "componentType": "system",
                "output": str(e),
                "time": _now()
            }

    def _check_memory(self) -> Dict[str, Any]:
        try:
            memory = psutil.virtual_memory()
            available_mb = memory.available / (1024 ** 2)

            if available_mb < 100:
                status_val = HealthStatus.FAIL
            elif available_mb < 500:
                status_val = HealthStatus.WARN
            else:
                status_val = HealthStatus.PASS

            return {
                "status": status_val,
                "componentType": "system",
                "observedValue": f"{available_mb:.2f}",
                "observedUnit": "MB",
                "time": _now()
            }
        except Exception as e:
            return {
                "status": HealthStatus.WARN,
                "componentType": "system",
                "output": str(e),
                "time": _now()
            }

    def _check_schema(self) -> Dict[str, Any]:
        """The products table must exist; a missing alembic_version only warns."""
        try:
            inspector = inspect(self.database.engine)
            if not inspector.has_table("products"):
                return {
                    "status": HealthStatus.FAIL,
                    "componentType": "datastore",
                    "output": "Table 'products' not found",
                    "time": _now()
                }
            if not inspector.has_table("alembic_version"):
                return {
                    "status": HealthStatus.WARN,
                    "componentType": "datastore",
                    "output": "Migrations table not found",
                    "time": _now()
                }
            return {"status": HealthStatus.PASS, "componentType": "datastore", "time": _now()}
        except Exception as e:
            return {
                "status": HealthStatus.FAIL,
                "componentType": "datastore",
                "output": str(e),
                "time": _now()
            }

    @staticmethod
    def calculate_overall_status(checks: Dict[str, Dict[str, Any]]) -> HealthStatus:
        statuses = [check.get("status", HealthStatus.PASS) for check in checks.values()]

        if HealthStatus.FAIL in statuses:
            return HealthStatus.FAIL
        elif HealthStatus.WARN in statuses:
            return HealthStatus.WARN
        return HealthStatus.PASS
