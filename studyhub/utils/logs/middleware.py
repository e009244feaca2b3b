from studyhub.utils.logs.errors import ErrorLogger, _current_error_logger


class LoggingMiddleware:
    """Installs a request-scoped ErrorLogger for HTTP and WebSocket scopes."""

    def __init__(self, app):
        self.app = app

    async def __call__(self, scope, receive, send):
        if scope["type"] not in ("http", "websocket"):
            await self.app(scope, receive, send)
            return

        error_logger = ErrorLogger(scope["type"])
        error_token = _current_error_logger.set(error_logger)

        try:
            await self.app(scope, receive, send)
        except Exception as e:
            error_logger.exception(
                "Unhandled error while serving request",
                e,
                path=scope.get("path"),
                method=scope.get("method", "WS"),
            )
            raise
        finally:
            _current_error_logger.reset(error_token)
