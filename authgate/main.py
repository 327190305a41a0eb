import uvicorn

from authgate.core.app_factory import create_app

app = create_app()


if __name__ == "__main__":
    uvicorn.run(app, host="0.0.0.0", port=3000, log_config=None)
