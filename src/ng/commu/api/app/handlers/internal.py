from aiohttp import web

from ng.commu.api.app.config import ErrorWindowAppKey


async def handle_internal_ready(request: web.Request):
    if request.app[ErrorWindowAppKey].is_ready():
        return web.Response(status=200)
    return web.Response(status=503)


async def handle_internal_alive(request: web.Request):
    return web.Response(status=200, text="OK")
