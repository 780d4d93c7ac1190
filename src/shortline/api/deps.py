"""Shared FastAPI dependencies for shortline routers."""

from __future__ import annotations

from typing import Annotated

from fastapi import Depends, Request

from shortline.services import Services


def get_services(request: Request) -> Services:
    """The stores wired for this application instance."""
    services: Services = request.app.state.services
    return services


ServicesDep = Annotated[Services, Depends(get_services)]
