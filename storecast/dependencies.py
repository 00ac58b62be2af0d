"""
FastAPI dependencies wiring services to the shared platform client.

The client is created once in the application lifespan and stored on
``app.state``; services are cheap and built per request around it.
"""

from fastapi import Depends, Request

from storecast.config import settings
from storecast.services.directory.index_builder import DirectoryIndexBuilder
from storecast.services.distribution.catalog import SubmissionCatalogReader
from storecast.services.distribution.fanout import TaskFanOutEngine
from storecast.services.distribution.orchestrator import DistributionOrchestrator
from storecast.services.distribution.profile_import import ProfileImportService
from storecast.services.staffbase.client import StaffbaseClient


def get_staffbase_client(request: Request) -> StaffbaseClient:
    return request.app.state.staffbase_client


def get_index_builder(client: StaffbaseClient = Depends(get_staffbase_client)) -> DirectoryIndexBuilder:
    return DirectoryIndexBuilder(
        client,
        attribute_key=settings.HIDDEN_ATTRIBUTE_KEY,
        page_size=settings.DIRECTORY_PAGE_SIZE,
        pause_every_rows=settings.DIRECTORY_PAUSE_EVERY_ROWS,
        pause_seconds=settings.DIRECTORY_PAUSE_SECONDS,
    )


def get_orchestrator(client: StaffbaseClient = Depends(get_staffbase_client)) -> DistributionOrchestrator:
    fanout = TaskFanOutEngine(
        client,
        space_id=settings.STAFFBASE_SPACE_ID,
        page_size=settings.INSTALLATION_PAGE_SIZE,
        batch_size=settings.FANOUT_BATCH_SIZE,
        news_plugin_id=settings.NEWS_PLUGIN_ID,
    )
    return DistributionOrchestrator(
        client,
        space_id=settings.STAFFBASE_SPACE_ID,
        fanout=fanout,
        profile_import=ProfileImportService(client),
        news_plugin_id=settings.NEWS_PLUGIN_ID,
        locales=settings.CONTENT_LOCALES,
        default_department=settings.DEFAULT_DEPARTMENT,
    )


def get_catalog(client: StaffbaseClient = Depends(get_staffbase_client)) -> SubmissionCatalogReader:
    return SubmissionCatalogReader(
        client,
        space_id=settings.STAFFBASE_SPACE_ID,
        page_size=settings.INSTALLATION_PAGE_SIZE,
        news_plugin_id=settings.NEWS_PLUGIN_ID,
        locale=settings.CONTENT_LOCALES[0],
    )
