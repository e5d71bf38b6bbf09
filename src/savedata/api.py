"""HTTP routes for the save data endpoints.

Routes are thin: they resolve the caller's account, hand the raw query tokens
and body to SaveDataService, and map the error hierarchy onto status codes.
"""
from __future__ import annotations

import logging
from typing import Optional

from fastapi import Depends, FastAPI, Header, Request
from fastapi.responses import PlainTextResponse, Response
from pydantic import BaseModel, ConfigDict, Field
from starlette.concurrency import run_in_threadpool

from . import __version__
from .auth import Authenticator
from .errors import AuthenticationError, InvalidRequest, SaveDataError
from .service import SaveDataService

logger = logging.getLogger(__name__)


class ClearResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    new_completion: bool = Field(alias="newCompletion")


def create_app(service: SaveDataService, authenticator: Authenticator) -> FastAPI:
    app = FastAPI(title="Save Data Server", version=__version__)
    app.state.service = service

    def current_account(authorization: Optional[str] = Header(default=None)) -> bytes:
        if not authorization:
            raise AuthenticationError("missing session token")
        return authenticator.resolve(authorization)

    @app.exception_handler(AuthenticationError)
    async def _unauthorized(request: Request, exc: AuthenticationError) -> PlainTextResponse:
        return PlainTextResponse(str(exc), status_code=401)

    @app.exception_handler(InvalidRequest)
    async def _bad_request(request: Request, exc: InvalidRequest) -> PlainTextResponse:
        logger.info("Rejected %s %s: %s", request.method, request.url.path, exc)
        return PlainTextResponse(str(exc), status_code=400)

    @app.exception_handler(SaveDataError)
    async def _internal(request: Request, exc: SaveDataError) -> PlainTextResponse:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc)
        return PlainTextResponse(str(exc), status_code=500)

    @app.get("/savedata/get")
    def get_savedata(
        datatype: Optional[str] = None,
        slot: Optional[str] = None,
        account: bytes = Depends(current_account),
    ) -> Response:
        return Response(content=service.get(account, datatype, slot), media_type="application/json")

    @app.post("/savedata/update")
    async def update_savedata(
        request: Request,
        datatype: Optional[str] = None,
        slot: Optional[str] = None,
        account: bytes = Depends(current_account),
    ) -> Response:
        body = await request.body()
        await run_in_threadpool(service.update, account, datatype, slot, body)
        return Response(status_code=200)

    @app.get("/savedata/delete")
    def delete_savedata(
        datatype: Optional[str] = None,
        slot: Optional[str] = None,
        account: bytes = Depends(current_account),
    ) -> Response:
        service.delete(account, datatype, slot)
        return Response(status_code=200)

    @app.post("/savedata/clear", response_model=ClearResponse)
    async def clear_savedata(
        request: Request,
        slot: Optional[str] = None,
        account: bytes = Depends(current_account),
    ) -> ClearResponse:
        body = await request.body()
        new_completion = await run_in_threadpool(service.clear, account, slot, body)
        return ClearResponse(new_completion=new_completion)

    @app.get("/daily/seed", response_class=PlainTextResponse)
    def daily_seed() -> str:
        return service.ledger.daily_seeds.current_seed()

    return app
