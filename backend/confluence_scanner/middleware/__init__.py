# Middleware: request ids and request logging
from confluence_scanner.middleware.request_logger import RequestLoggerMiddleware

__all__ = ["RequestLoggerMiddleware"]
