# dbn/config.py
"""
Hydra configuration for the compiler.

The packaged `conf/compile.yaml` selects a backend from the `backend` config
group (vector, raster_test, raster_binary) and lists variables predefined for
every program. Overrides use the usual hydra syntax:

    load_config(["backend=raster_binary"])
    load_config(["backend.width=400", "backend.height=400"])
    load_config(["+context.size=10"])
"""
from pathlib import Path
from typing import Dict, Iterable, Optional

import hydra
from hydra import compose, initialize_config_dir
from omegaconf import DictConfig, OmegaConf

from .backends.base import BaseBackend

CONFIG_DIR = Path(__file__).resolve().parent / "conf"


def load_config(overrides: Optional[Iterable[str]] = None, config_name: str = "compile") -> DictConfig:
    """Composes the packaged configuration with the given overrides."""
    with initialize_config_dir(version_base=None, config_dir=str(CONFIG_DIR)):
        return compose(config_name=config_name, overrides=list(overrides or []))


def build_backend(cfg: DictConfig) -> BaseBackend:
    """Instantiates the configured backend from its `_target_`."""
    return hydra.utils.instantiate(cfg.backend)


def initial_context(cfg: DictConfig) -> Dict[str, str]:
    # values come back from yaml as ints, programs expect decimal strings
    if cfg.get("context") is None:
        return {}
    context = OmegaConf.to_container(cfg.context, resolve=True)
    return {name: str(value) for name, value in context.items()}
