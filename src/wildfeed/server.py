"""aiohttp query endpoint.

Routes:
  - GET /                  liveness
  - GET /entities          loaded entity configurations
  - GET /entities/{id}     merged events (``from``, ``to``, ``only`` query params)
"""

from __future__ import annotations

import logging

from aiohttp import web

from wildfeed.exceptions import EntityNotFoundError, InvalidFeedSelectionError
from wildfeed.scheduler import Scheduler, parse_time

_logger = logging.getLogger(__name__)

SCHEDULER_KEY = web.AppKey("scheduler", Scheduler)


async def _index(_request: web.Request) -> web.Response:
    return web.Response(text="wildfeed is running")


async def _list_entities(request: web.Request) -> web.Response:
    scheduler = request.app[SCHEDULER_KEY]
    return web.json_response([entity.to_json_dict() for entity in scheduler.entities.values()])


async def _get_entity(request: web.Request) -> web.Response:
    scheduler = request.app[SCHEDULER_KEY]
    entity_id = request.match_info["entity_id"]

    entity = scheduler.entities.get(entity_id)
    if entity is None:
        raise web.HTTPNotFound(text=f"Entity not found: {entity_id}")

    only_param = request.query.get("only")
    only = only_param.split(",") if only_param else None
    start = parse_time(request.query.get("from"), entity.start)
    end = parse_time(request.query.get("to"), scheduler.now())

    try:
        result = scheduler.query(entity_id, start, end, only)
    except EntityNotFoundError as exc:
        raise web.HTTPNotFound(text=str(exc)) from exc
    except InvalidFeedSelectionError as exc:
        raise web.HTTPBadRequest(text=str(exc)) from exc

    _logger.debug("Serving %d events for %s", len(result.events), entity_id)
    return web.json_response(result.to_dict())


def create_app(scheduler: Scheduler) -> web.Application:
    """Build the web application serving *scheduler*'s caches."""
    app = web.Application()
    app[SCHEDULER_KEY] = scheduler
    app.router.add_get("/", _index)
    app.router.add_get("/entities", _list_entities)
    app.router.add_get("/entities/{entity_id}", _get_entity)
    return app
