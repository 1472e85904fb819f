"""Explicit wiring of clients, repositories and services with a shared lifecycle."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Optional, Sequence

import httpx

from flightwx.application.interfaces import (
    AuditSinkInterface,
    AvailabilityRepositoryInterface,
    BookingRepositoryInterface,
    NotificationSenderInterface,
    PreferenceRankingRepositoryInterface,
    RescheduleOptionRepositoryInterface,
    WeatherProviderInterface,
)
from flightwx.application.use_cases.booking_use_cases import ChangeBookingStatusUseCase
from flightwx.application.use_cases.reschedule_use_cases import (
    ConfirmRescheduleUseCase,
    RegenerateOptionsUseCase,
)
from flightwx.config.settings import Settings
from flightwx.database import Database
from flightwx.domain.errors import ForecastOutOfRange
from flightwx.infrastructure.external.audit import LoggingAuditSink
from flightwx.infrastructure.external.notifications import (
    EmailNotificationSender,
    LoggingNotificationSender,
)
from flightwx.infrastructure.persistence.repositories_memory import (
    InMemoryAvailabilityRepository,
    InMemoryBookingRepository,
    InMemoryPreferenceRankingRepository,
    InMemoryRescheduleOptionRepository,
)
from flightwx.infrastructure.persistence.repositories_sqlalchemy import (
    SQLAlchemyAuditSink,
    SQLAlchemyAvailabilityRepository,
    SQLAlchemyBookingRepository,
    SQLAlchemyPreferenceRankingRepository,
    SQLAlchemyRescheduleOptionRepository,
)
from flightwx.pipelines.reschedule import RescheduleContext, RescheduleEngine
from flightwx.services.availability import AvailabilityCalendar
from flightwx.services.conflict_detector import ConflictDetector
from flightwx.services.locks import BookingLocks
from flightwx.services.monitor import ConflictMonitorLoop
from flightwx.services.preference_resolver import PreferenceResolver
from flightwx.services.weather_cache import WeatherCache
from flightwx.services.weather_gateway import WeatherGateway
from flightwx.services.weather_providers import OpenWeatherMapProvider, WeatherApiProvider
from flightwx.services.weather_validator import WeatherValidator
from flightwx.utils.resilience import CircuitBreaker, RetryPolicy

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class ServiceContainer:
    """Everything the API and the monitor need, built once per process."""

    settings: Settings
    http_client: httpx.AsyncClient
    database: Optional[Database]
    gateway: WeatherGateway
    bookings: BookingRepositoryInterface
    options: RescheduleOptionRepositoryInterface
    rankings: PreferenceRankingRepositoryInterface
    availability_repository: AvailabilityRepositoryInterface
    audit: AuditSinkInterface
    notifications: NotificationSenderInterface
    locks: BookingLocks
    availability: AvailabilityCalendar
    validator: WeatherValidator
    detector: ConflictDetector
    engine: RescheduleEngine
    resolver: PreferenceResolver
    regenerate: RegenerateOptionsUseCase
    confirm: ConfirmRescheduleUseCase
    change_status: ChangeBookingStatusUseCase
    monitor: ConflictMonitorLoop
    owns_http_client: bool = True

    async def start(self) -> None:
        if self.database is not None:
            await self.database.init_models()
        self.gateway.start()
        if self.settings.monitor.enabled:
            self.monitor.start()
        logger.info(
            "Service container started (storage=%s, providers=%s)",
            self.settings.storage_backend,
            ", ".join(self.gateway.provider_names),
        )

    async def aclose(self) -> None:
        await self.monitor.stop()
        await self.gateway.aclose()
        if self.owns_http_client:
            await self.http_client.aclose()
        if self.database is not None:
            await self.database.dispose()
        logger.info("Service container closed")


def build_container(
    app_settings: Settings,
    *,
    providers: Optional[Sequence[WeatherProviderInterface]] = None,
    http_client: Optional[httpx.AsyncClient] = None,
    bookings: Optional[BookingRepositoryInterface] = None,
    options: Optional[RescheduleOptionRepositoryInterface] = None,
    rankings: Optional[PreferenceRankingRepositoryInterface] = None,
    availability_repository: Optional[AvailabilityRepositoryInterface] = None,
    audit: Optional[AuditSinkInterface] = None,
    notifications: Optional[NotificationSenderInterface] = None,
    clock: Callable[[], datetime] = _utcnow,
) -> ServiceContainer:
    """Assemble the service graph; any collaborator can be overridden."""

    owns_http_client = http_client is None
    client = http_client or httpx.AsyncClient()

    if providers is None:
        providers = [
            OpenWeatherMapProvider(client, app_settings.openweathermap),
            WeatherApiProvider(client, app_settings.weatherapi),
        ]
        if not any(provider.is_configured() for provider in providers):
            logger.warning("No weather provider API key configured; every check will fail closed")

    resilience = app_settings.resilience
    breakers = {
        provider.name: CircuitBreaker(
            provider.name,
            failure_threshold=resilience.failure_threshold,
            success_threshold=resilience.half_open_successes,
            reset_timeout=resilience.reset_timeout_seconds,
            ignored=(ForecastOutOfRange,),
        )
        for provider in providers
    }
    gateway = WeatherGateway(
        providers,
        WeatherCache(
            ttl_seconds=app_settings.weather_cache.ttl_seconds,
            max_entries=app_settings.weather_cache.max_entries,
        ),
        breakers=breakers,
        retry_policy=RetryPolicy(
            max_retries=resilience.max_retries,
            base_delay=resilience.base_delay_seconds,
            factor=resilience.backoff_factor,
            max_delay=resilience.max_delay_seconds,
        ),
        sweep_interval=app_settings.weather_cache.sweep_interval_seconds,
    )

    database: Optional[Database] = None
    if app_settings.storage_backend == "sql":
        database = Database(app_settings.database, debug=app_settings.debug)
        bookings = bookings or SQLAlchemyBookingRepository(database)
        options = options or SQLAlchemyRescheduleOptionRepository(database)
        rankings = rankings or SQLAlchemyPreferenceRankingRepository(database)
        availability_repository = availability_repository or SQLAlchemyAvailabilityRepository(database)
        audit = audit or SQLAlchemyAuditSink(database)
    else:
        bookings = bookings or InMemoryBookingRepository()
        options = options or InMemoryRescheduleOptionRepository()
        rankings = rankings or InMemoryPreferenceRankingRepository()
        availability_repository = availability_repository or InMemoryAvailabilityRepository()
        audit = audit or LoggingAuditSink()

    if notifications is None:
        if app_settings.mail.is_configured():
            notifications = EmailNotificationSender(app_settings.mail)
        else:
            notifications = LoggingNotificationSender()

    locks = BookingLocks()
    availability = AvailabilityCalendar(availability_repository)
    validator = WeatherValidator(gateway, clock=clock)
    detector = ConflictDetector(
        bookings,
        validator,
        cross_validate=app_settings.monitor.cross_validate,
        concurrency=app_settings.monitor.concurrency,
        clock=clock,
    )
    engine = RescheduleEngine(
        bookings,
        options,
        RescheduleContext(
            validator=validator,
            availability=availability,
            config=app_settings.reschedule,
            clock=clock,
        ),
    )
    resolver = PreferenceResolver(rankings, options, audit, locks, clock=clock)
    regenerate = RegenerateOptionsUseCase(
        bookings, engine, resolver, audit, notifications, locks, clock=clock
    )
    confirm = ConfirmRescheduleUseCase(
        bookings,
        options,
        resolver,
        validator,
        availability,
        audit,
        notifications,
        locks,
        cross_validate=app_settings.reschedule.cross_validate,
        timezone_name=app_settings.reschedule.timezone,
    )
    change_status = ChangeBookingStatusUseCase(bookings, audit, locks)
    monitor = ConflictMonitorLoop(
        bookings,
        detector,
        regenerate,
        audit,
        notifications,
        locks,
        app_settings.monitor,
        clock=clock,
    )

    return ServiceContainer(
        settings=app_settings,
        http_client=client,
        database=database,
        gateway=gateway,
        bookings=bookings,
        options=options,
        rankings=rankings,
        availability_repository=availability_repository,
        audit=audit,
        notifications=notifications,
        locks=locks,
        availability=availability,
        validator=validator,
        detector=detector,
        engine=engine,
        resolver=resolver,
        regenerate=regenerate,
        confirm=confirm,
        change_status=change_status,
        monitor=monitor,
        owns_http_client=owns_http_client,
    )


__all__ = ["ServiceContainer", "build_container"]
