"""
Tests for BaseService transaction handling and operation metrics.
"""

import pytest
from sqlalchemy.exc import OperationalError

from finsage.core.exceptions import ServiceException, ValidationException
from finsage.services.base import BaseService


class SampleService(BaseService):
    @BaseService.measure_operation("succeed")
    def succeed(self):
        return "ok"

    @BaseService.measure_operation("fail")
    def fail(self):
        raise ValidationException("nope")

    @BaseService.measure_operation("async_succeed")
    async def async_succeed(self):
        return "ok"


def test_database_errors_become_service_exceptions(db):
    service = SampleService(db)

    with pytest.raises(ServiceException):
        with service.transaction():
            raise OperationalError("UPDATE bookings", {}, Exception("database is locked"))


def test_domain_errors_propagate_unchanged(db):
    service = SampleService(db)

    with pytest.raises(ValidationException):
        with service.transaction():
            raise ValidationException("bad input")


def test_operation_metrics_track_success_rate(db):
    service = SampleService(db)

    service.succeed()
    with pytest.raises(ValidationException):
        service.fail()

    metrics = service.get_metrics()
    assert metrics["succeed"]["success_rate"] == 1.0
    assert metrics["fail"]["success_rate"] == 0.0


@pytest.mark.asyncio
async def test_async_operations_are_measured(db):
    service = SampleService(db)

    assert await service.async_succeed() == "ok"
    assert service.get_metrics()["async_succeed"]["count"] >= 1
