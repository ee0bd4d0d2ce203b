from fastapi import Request
import logging
import time

logger = logging.getLogger("rentverse.requests")


class RequestLoggingMiddleware:
    """
    Middleware pour journaliser chaque requête API (méthode, chemin, statut, durée)
    """

    ignore_paths = ("/docs", "/redoc", "/openapi.json", "/favicon.ico")

    def __init__(self, app):
        self.app = app

    async def __call__(self, scope, receive, send):
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        request = Request(scope, receive)
        start_time = time.time()
        status_code = 500

        # Wrapper pour capturer le statut de la réponse
        async def send_wrapper(message):
            nonlocal status_code
            if message["type"] == "http.response.start":
                status_code = message["status"]
            await send(message)

        try:
            await self.app(scope, receive, send_wrapper)
        finally:
            process_time = time.time() - start_time
            self._log_request(request, status_code, process_time)

    def _log_request(self, request: Request, status_code: int, process_time: float):
        if any(request.url.path.startswith(path) for path in self.ignore_paths):
            return

        client_ip = request.client.host if request.client else "-"
        level = logging.WARNING if status_code >= 400 else logging.INFO
        if status_code >= 500:
            level = logging.ERROR

        logger.log(
            level,
            "%s %s -> %s (%.2f ms) ip=%s",
            request.method,
            request.url.path,
            status_code,
            process_time * 1000,
            client_ip
        )
