"""
Timeline Service Dependency.

The service is built once in the application lifespan and kept on
``app.state``; endpoints receive it through ``TimelineServiceDep``.
"""

from typing import Annotated

from fastapi import Depends, Request

from agent_timeline.timeline.service import TimelineService


def get_timeline_service(request: Request) -> TimelineService:
    """Return the service attached to the running application."""
    service = getattr(request.app.state, "timeline_service", None)
    if service is None:
        raise RuntimeError("Timeline service is not initialized; the application lifespan has not run")
    return service


TimelineServiceDep = Annotated[TimelineService, Depends(get_timeline_service)]
