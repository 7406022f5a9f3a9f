import uvicorn

from inventory_service.core_settings import get_settings


def main() -> None:
    settings = get_settings()
    uvicorn.run("inventory_service.main:create_app", factory=True, host="0.0.0.0", port=settings.PORT)


if __name__ == "__main__":
    main()
