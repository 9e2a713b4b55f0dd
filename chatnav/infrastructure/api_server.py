from __future__ import annotations

import logging
from dataclasses import dataclass, field

import uvicorn

from chatnav.config.settings import get_api_host, get_api_port
from chatnav.infrastructure import api
from chatnav.infrastructure.session_store import SessionStore

logger = logging.getLogger(__name__)


@dataclass
class ApiServer:
    """Runs the routing API under uvicorn.

    A ``store`` given here replaces the module-level session store so the
    served app shares the caller's dispatcher configuration.
    """

    host: str = field(default_factory=get_api_host)
    port: int = field(default_factory=get_api_port)
    log_level: str = "info"
    store: SessionStore | None = None

    def build_config(self) -> uvicorn.Config:
        if self.store is not None:
            api.store = self.store
        return uvicorn.Config(api.app, host=self.host, port=self.port, log_level=self.log_level)

    def serve_forever(self) -> None:
        logger.info("api server starting host=%s port=%s", self.host, self.port)
        uvicorn.Server(self.build_config()).run()
