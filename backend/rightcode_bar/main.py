from __future__ import annotations

import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .api.routes import accounts, dashboard, status
from .config import get_settings
from .dependencies import get_bridge_service

settings = get_settings()
logging.basicConfig(
    level=settings.log_level.upper(),
    format='%(asctime)s %(levelname)s %(name)s: %(message)s',
)

app = FastAPI(title='RightCode Bar', version='0.3.0')

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_allow_origins,
    allow_credentials=True,
    allow_methods=['*'],
    allow_headers=['*'],
)


@app.on_event('startup')
async def startup_event() -> None:
    bridge = get_bridge_service()
    await bridge.start()


@app.on_event('shutdown')
async def shutdown_event() -> None:
    bridge = get_bridge_service()
    await bridge.shutdown()


@app.get('/health', tags=['health'])
async def health_check() -> dict[str, str]:
    return {'status': 'ok'}


app.include_router(status.router, prefix='/api')
app.include_router(dashboard.router, prefix='/api')
app.include_router(accounts.router, prefix='/api')


def run() -> None:
    import uvicorn

    uvicorn.run('rightcode_bar.main:app', host='127.0.0.1', port=8100, log_level=settings.log_level.lower())
