"""Request-scoped access to the application's services."""

from fastapi import Request

from comic_video.services import Services


def get_services(request: Request) -> Services:
    return request.app.state.services
