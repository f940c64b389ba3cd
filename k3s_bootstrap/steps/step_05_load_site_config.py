from __future__ import annotations

import logging
from typing import Any, Dict

from ..errors import ConfigNotFound
from ..site_config import SiteConfig, load_site_config
from ..state_store import add_warning

logger = logging.getLogger(__name__)


class LoadSiteConfigStep:
    """Re-read the site config embedded on the medium, same defaulting rules as the build.

    A missing file is not fatal here: the node still comes up with the
    default node count and version.
    """

    step_id = "05_load_site_config"
    enter_phase = None
    exit_phase = None

    def __init__(self, site_config_path: str):
        self.site_config_path = site_config_path

    def run(self, state: Dict[str, Any]) -> Dict[str, Any]:
        try:
            site_cfg = load_site_config(self.site_config_path)
        except ConfigNotFound as e:
            logger.warning("%s; continuing with defaults", e)
            add_warning(state, site_config=str(e))
            site_cfg = SiteConfig()

        state.setdefault("config", {})["site"] = site_cfg.summary()
        if site_cfg.degraded:
            logger.warning("Embedded site config has no site_name")
        return state
