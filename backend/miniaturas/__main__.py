import uvicorn

from miniaturas.api import criar_app
from miniaturas.config import get_settings


def main():
    settings = get_settings()
    uvicorn.run(criar_app(settings), host=settings.host, port=settings.port)


if __name__ == "__main__":
    main()
