import uvicorn

from metrics_gateway.core.config import load_settings


def main() -> None:
    settings = load_settings()
    uvicorn.run(
        "metrics_gateway.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.reload and not settings.is_production,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    main()
