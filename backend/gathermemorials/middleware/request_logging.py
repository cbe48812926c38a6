import time
from flask import request, g, current_app


def request_logging_middleware(app):
    @app.before_request
    def start_timer():
        g.request_started = time.perf_counter()

    @app.after_request
    def log_request(response):
        started = g.pop("request_started", None)
        if started is None:
            return response

        duration_ms = (time.perf_counter() - started) * 1000
        current_app.logger.info(
            "%s %s %s %.1fms",
            request.method,
            request.path,
            response.status_code,
            duration_ms,
        )

        if duration_ms > current_app.config["SLOW_REQUEST_THRESHOLD_MS"]:
            current_app.logger.warning(
                "Slow request: %s %s took %.0fms", request.method, request.path, duration_ms
            )

        return response
