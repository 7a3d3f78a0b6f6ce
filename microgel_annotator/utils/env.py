import logging
from gettext import gettext as _
from typing import Dict

from easydict import EasyDict as edict

logger = logging.getLogger(__name__)

ENV_PREFIX = "MICROGEL_"


def _coerce_like(value, default):
    if default is None or isinstance(value, type(default)):
        return value
    if isinstance(default, bool):
        return str(value).lower() in ("1", "true", "yes", "on")
    return type(default)(value)


def load_cfg_from_env(cfg: edict, env: Dict[str, str]):
    for k, v in env.items():
        if k.startswith(ENV_PREFIX):
            cfgkey = k[len(ENV_PREFIX):].replace("__", ".").lower()
            logger.warning(
                _(
                    "Changing configuration entry from environment variable: {k}={v}"
                ).format(
                    k=cfgkey, v=v
                )  # noqa:E501
            )  # noqa: E501
            *parts, last = cfgkey.split(".")
            this_cfg = cfg
            for part in parts:
                if this_cfg.get(part) is None:
                    this_cfg[part] = edict()
                this_cfg = this_cfg[part]
            try:
                this_cfg[last] = _coerce_like(v, this_cfg.get(last))
            except ValueError as e:
                raise ValueError(
                    _("Invalid value for {k}: {v}").format(k=cfgkey, v=v)
                ) from e
    return cfg
