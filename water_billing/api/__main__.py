"""Run the document endpoint: python -m water_billing.api"""

import uvicorn

from water_billing.api.app import create_app
from water_billing.config import get_settings


def main() -> None:
    settings = get_settings().app
    uvicorn.run(
        create_app(app_settings=settings),
        host=settings.api_host,
        port=settings.api_port,
        log_config=None,
    )


if __name__ == "__main__":
    main()
