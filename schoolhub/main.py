"""Main entry point for the progression API"""
import uvicorn

from schoolhub.api.server import create_api_application
from schoolhub.config import API_HOST, API_PORT, LOG_LEVEL

app = create_api_application()


def main() -> None:
    """Run the API with uvicorn"""
    uvicorn.run(app, host=API_HOST, port=API_PORT, log_level=LOG_LEVEL.lower())


if __name__ == "__main__":
    main()
