from __future__ import annotations

import uvicorn

from followgraph.env import load_dotenv_if_present


def main() -> None:
    # Load .env early so FOLLOWGRAPH_* vars exist before anything reads them.
    load_dotenv_if_present()

    # Import after dotenv load (prevents "config read before env" surprises)
    from followgraph.api.app import create_app
    from followgraph.config import load_config
    from followgraph.structured_logging import configure_structured_logging

    cfg = load_config()
    configure_structured_logging(cfg.log_level)
    uvicorn.run(create_app(cfg=cfg), host=cfg.api_host, port=cfg.api_port, log_level=cfg.log_level.lower())


if __name__ == "__main__":
    main()
