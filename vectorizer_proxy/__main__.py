import uvicorn

from vectorizer_proxy.config import settings


def main() -> None:
    uvicorn.run("vectorizer_proxy.main:app", host=settings.host, port=settings.port)


if __name__ == "__main__":
    main()
