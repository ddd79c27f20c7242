from fastapi import Request
from providers.stream_provider import HelixStreamProvider
from services.aggregation_service import AggregationService
from services.browse_service import BrowseService


def get_stream_provider(request: Request) -> HelixStreamProvider:
    return request.app.state.stream_provider


def get_aggregation_service(request: Request) -> AggregationService:
    return request.app.state.aggregation_service


def get_browse_service(request: Request) -> BrowseService:
    return request.app.state.browse_service
