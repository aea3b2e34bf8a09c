"""Run the HRM mock server with uvicorn.

Usage:
    python -m mock_servers.hrm_mock
    HRM_PORT=4000 HRM_DATA_FILE=db.json python -m mock_servers.hrm_mock
"""

from __future__ import annotations

import uvicorn

from hrm_core.config import get_settings


def main() -> None:
    settings = get_settings()
    uvicorn.run(
        "mock_servers.hrm_mock.app:app",
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    main()
