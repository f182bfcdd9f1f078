# login_api/credentials.py
from dataclasses import dataclass, field

from pydantic import ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

from .errors import ConfigurationError


@dataclass(frozen=True)
class Credentials:
    identifier: str
    secret: str = field(repr=False)


class _SiteCredentials(BaseSettings):
    # read as <PREFIX>_USR / <PREFIX>_PWD, prefix supplied per site
    USR: str
    PWD: str

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")


def load_credentials(env_prefix: str, env_file: str | None = ".env") -> Credentials:
    """Read the two credential variables for one site.

    Process environment wins over the ``.env`` file. Empty values count as
    missing.
    """
    prefix = env_prefix.rstrip("_").upper() + "_"
    names = {"USR": f"{prefix}USR", "PWD": f"{prefix}PWD"}
    try:
        raw = _SiteCredentials(_env_prefix=prefix, _env_file=env_file)
    except ValidationError as e:
        missing = sorted(names.get(str(err["loc"][0]), str(err["loc"][0])) for err in e.errors() if err["loc"])
        raise ConfigurationError(
            f"Missing required environment variables {' or '.join(missing)}"
        ) from None

    missing = [names[k] for k, v in (("USR", raw.USR), ("PWD", raw.PWD)) if not v.strip()]
    if missing:
        raise ConfigurationError(f"Missing required environment variables {' or '.join(missing)}")
    return Credentials(identifier=raw.USR, secret=raw.PWD)
