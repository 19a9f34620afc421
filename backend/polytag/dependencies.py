"""FastAPI dependencies for the process-scoped services built at startup."""
from fastapi import Request

from polytag.config import Settings
from polytag.services.file_storage import FileDriver
from polytag.services.search_index import SearchIndex


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_file_driver(request: Request) -> FileDriver:
    return request.app.state.file_driver


def get_search_index(request: Request) -> SearchIndex:
    return request.app.state.search_index
