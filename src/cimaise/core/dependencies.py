"""Wiring of the variant pipeline from application settings."""

from dataclasses import dataclass
from typing import Callable

from cimaise.core.config import Settings
from cimaise.core.database import setup_db_session
from cimaise.services.imaging.encoder import ImageEncoder, PillowEncoder
from cimaise.services.site_settings import SiteSettingsService
from cimaise.services.variants.generator import VariantGenerator
from cimaise.services.variants.resolver import VariantResolver
from cimaise.uow import create_uow_factory
from cimaise.workers.variant_maintenance import MaintenanceScheduler


@dataclass
class AppServices:
    """Process-scoped service graph.

    One instance per process: the settings cache inside site_settings is shared
    by the generator and the scheduler built alongside it.
    """

    settings: Settings
    uow_factory: Callable
    site_settings: SiteSettingsService
    generator: VariantGenerator
    scheduler: MaintenanceScheduler
    resolver: VariantResolver


def build_services(
    settings: Settings,
    uow_factory: Callable | None = None,
    encoder: ImageEncoder | None = None,
) -> AppServices:
    """Build the service graph.

    Args:
        settings: Application settings
        uow_factory: Existing UoW factory (a new engine is created when omitted)
        encoder: Image encoder (PillowEncoder when omitted)

    Returns:
        AppServices ready for use
    """
    if uow_factory is None:
        session_factory = setup_db_session(settings.database_url, settings.db_pool_size)
        uow_factory = create_uow_factory(session_factory)

    site_settings = SiteSettingsService(uow_factory)
    generator = VariantGenerator(
        uow_factory=uow_factory,
        site_settings=site_settings,
        encoder=encoder or PillowEncoder(),
        settings=settings,
    )
    scheduler = MaintenanceScheduler.from_settings(settings, uow_factory, site_settings, generator)

    return AppServices(
        settings=settings,
        uow_factory=uow_factory,
        site_settings=site_settings,
        generator=generator,
        scheduler=scheduler,
        resolver=VariantResolver.from_settings(settings),
    )
