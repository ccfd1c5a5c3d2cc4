from typing import Optional

import structlog
from flask import Flask, render_template_string

from config import AppSettings
from logging_setup import configure_logging
from region import RegionResolver

logger = structlog.get_logger()

PAGE = """<!DOCTYPE html>
<html lang="en">
<head>
  <meta charset="UTF-8">
  <meta name="viewport" content="width=device-width, initial-scale=1.0">
  <title>Colorteller</title>
  <style>
    body { font-family: 'Inter', sans-serif; display: flex; justify-content: center; align-items: center; min-height: 100vh; margin: 0; background: #f5f7fa; }
    .container { max-width: 500px; width: 100%; text-align: center; padding: 2.5rem; border-radius: 16px; background-color: white; }
    .badge { display: inline-block; padding: 0.5rem 1rem; background-color: #F3F4F6; border-radius: 9999px; }
    .color-box { width: 120px; height: 120px; margin: 1.5rem auto; border-radius: 12px; background-color: {{ color }}; }
    .color-name { font-weight: 600; color: {{ color }}; }
    .footer { margin-top: 2rem; font-size: 0.875rem; color: #6B7280; }
  </style>
</head>
<body>
  <div class="container">
    <h1>Colorteller</h1>
    <p>Running on Cloud Run in:</p>
    <div class="badge">{{ region }}</div>
    <p>The configured color is:</p>
    <div class="color-box"></div>
    <div class="color-name">{{ color }}</div>
    <div class="footer">Powered by Statsig &amp; Google Cloud Run</div>
  </div>
</body>
</html>
"""


def create_app(settings: Optional[AppSettings] = None, resolver: Optional[RegionResolver] = None) -> Flask:
    settings = settings or AppSettings.from_env()
    resolver = resolver or RegionResolver(host=settings.metadata_host)

    app = Flask(__name__)

    @app.route("/")
    def home():
        region = resolver.resolve(settings.metadata_timeout_ms)
        return render_template_string(PAGE, region=str(region), color=settings.color)

    return app


def main():
    configure_logging()
    settings = AppSettings.from_env()
    app = create_app(settings)
    logger.info("colorteller_listening", port=settings.port)
    app.run(host="0.0.0.0", port=settings.port)


if __name__ == "__main__":
    main()
