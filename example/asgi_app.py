import asyncio

from starlette.applications import Starlette
from starlette.requests import Request
from starlette.responses import JSONResponse, PlainTextResponse
from starlette.routing import Route

from chrono.config import config_from_env
from chrono.log_handlers import configure_logging
from chrono.middleware.asgi_timer import TimingMiddleware, record_error

SLOW_SECONDS = 0.6
VERY_SLOW_SECONDS = 2.1


async def fast(request: Request):
    return JSONResponse({"message": "fast response"})


async def slow(request: Request):
    await asyncio.sleep(SLOW_SECONDS)
    return JSONResponse({"message": "slow response"})


async def very_slow(request: Request):
    await asyncio.sleep(VERY_SLOW_SECONDS)
    return JSONResponse({"message": "very slow response"})


async def health(request: Request):
    return PlainTextResponse("OK")


async def teapot(request: Request):
    record_error(request, "brewing refused")
    return JSONResponse({"detail": "I'm a teapot"}, status_code=418)


routes = [
    Route("/fast", fast),
    Route("/slow", slow),
    Route("/very-slow", very_slow),
    Route("/health", health),
    Route("/teapot", teapot),
]


def create_app(config=None) -> Starlette:
    if config is None:
        config = config_from_env()
        config.add_skip_path("/health")
    app = Starlette(routes=routes)
    app.add_middleware(TimingMiddleware, config=config)
    return app


if __name__ == "__main__":
    import uvicorn

    configure_logging()
    uvicorn.run(create_app(), host="0.0.0.0", port=8080)
