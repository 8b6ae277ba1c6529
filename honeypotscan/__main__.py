import uvicorn

from .config.settings import settings


def main():
    uvicorn.run("honeypotscan.app:app", host="0.0.0.0", port=settings.PORT)


if __name__ == "__main__":
    main()
