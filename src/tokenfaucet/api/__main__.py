# src/tokenfaucet/api/__main__.py
from __future__ import annotations

import uvicorn

from tokenfaucet.env import load_dotenv_if_present


def main() -> None:
    # Load .env early so FAUCET_* vars exist before anything reads them.
    load_dotenv_if_present()

    # Import after dotenv load (config is read at create_app time)
    from tokenfaucet.api.app import create_app
    from tokenfaucet.api.structured_logging import configure_structured_logging
    from tokenfaucet.runtime.faucet_config import load_faucet_config

    cfg = load_faucet_config()
    configure_structured_logging(cfg.log_level)

    uvicorn.run(create_app(), host=cfg.api_host, port=cfg.api_port, log_level=cfg.log_level.lower())


if __name__ == "__main__":
    main()
