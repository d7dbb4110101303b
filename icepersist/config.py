"""Module for configuration variables with defaults that are overridable by a file."""

from __future__ import annotations

from configparser import ConfigParser, SectionProxy
from dataclasses import dataclass, field
import os
from typing import Any, Dict, Optional, Tuple

from icepersist.constants import RETRY_DELAY_MS
from icepersist.logger import log

# Storage option names containing any of these are masked in diagnostics.
_SENSITIVE_NAMES = ("key", "secret", "token", "password")


def _coerce(value: str) -> Any:
    """Turn an option string into a bool or int where it looks like one."""
    lowered = value.strip().lower()

    if lowered in ("true", "yes", "on"):
        return True
    elif lowered in ("false", "no", "off"):
        return False

    try:
        return int(lowered)
    except ValueError:
        return value.strip()


@dataclass(frozen=True)
class RemoteConfig:
    """Configuration variables related to resolving remote file systems."""

    # Prepended to paths without a scheme, like fs.defaultFS in Hadoop.
    default_fs: Optional[str] = None
    home_directory: Optional[str] = None

    @staticmethod
    def load(section: SectionProxy) -> RemoteConfig:
        """Load overridden variables from a section within a config file."""
        return RemoteConfig(
            default_fs=section.get("default_fs", fallback=None) or None,
            home_directory=section.get("home_directory", fallback=None) or None,
        )


@dataclass(frozen=True)
class RetryConfig:
    """Configuration variables related to retrying remote I/O."""

    delay_ms: int = RETRY_DELAY_MS

    # Substrings of exception type names that indicate eventual consistency glitches
    # of object stores. Client libraries do not agree on a common base class for
    # these, so they are matched by name.
    transient_type_names: Tuple[str, ...] = ("S3Exception",)

    @staticmethod
    def load(section: SectionProxy) -> RetryConfig:
        """Load overridden variables from a section within a config file."""
        config = RetryConfig()

        names = section.get("transient_type_names", fallback=None)
        if names is not None:
            type_names = tuple(n.strip() for n in names.split(",") if n.strip())
        else:
            type_names = config.transient_type_names

        return RetryConfig(
            delay_ms=section.getint("delay_ms", fallback=config.delay_ms),
            transient_type_names=type_names,
        )


@dataclass(frozen=True)
class IceConfig:
    """Configuration variables related to the node's internal object storage."""

    uri: Optional[str] = None
    lock_dir: str = os.path.expanduser("~/.icepersist/locks")

    @staticmethod
    def load(section: SectionProxy) -> IceConfig:
        """Load overridden variables from a section within a config file."""
        config = IceConfig()

        return IceConfig(
            uri=section.get("uri", fallback=None) or None,
            lock_dir=os.path.expanduser(section.get("lock_dir", fallback=config.lock_dir)),
        )


@dataclass(frozen=True)
class Config:
    """
    Configuration variables.

    A single instance is created at startup and shared by every component that talks
    to the remote file system. It is never modified afterwards.
    """

    remote: RemoteConfig = field(default_factory=RemoteConfig)
    retry: RetryConfig = field(default_factory=RetryConfig)
    ice: IceConfig = field(default_factory=IceConfig)

    # fsspec storage options per protocol, from [fs.<protocol>] sections.
    storage_options: Dict[str, Dict[str, Any]] = field(default_factory=dict)

    def options_for(self, protocol: str) -> Dict[str, Any]:
        """Return a copy of the storage options for the given protocol."""
        return dict(self.storage_options.get(protocol, {}))

    def describe(self) -> str:
        """Stringify the configuration for diagnostics, with secrets masked."""
        masked = {
            protocol: {
                name: "***" if any(s in name.lower() for s in _SENSITIVE_NAMES) else v
                for name, v in options.items()
            }
            for protocol, options in self.storage_options.items()
        }

        return (
            f"Config(remote={self.remote}, retry={self.retry}, ice={self.ice}, "
            f"storage_options={masked})"
        )

    @staticmethod
    def create(
        config_file: Optional[str] = None, default_fs: Optional[str] = None
    ) -> Config:
        """
        Create the process-wide configuration from the command-line surface.

        A config file and a default file system are mutually exclusive. If both are
        given then the file takes precedence, like it does in Hadoop.
        """
        if config_file is not None:
            if default_fs is not None:
                log.warning(f"ignoring default file system {default_fs} for config file")

            return Config.load(config_file)
        elif default_fs:
            return Config(remote=RemoteConfig(default_fs=default_fs))
        else:
            return Config()

    @staticmethod
    def load(filename: str) -> Config:
        """Load overridden configuration variables from a config file."""
        parser = ConfigParser()

        config = Config()

        try:
            with open(os.path.expanduser(filename), "r") as f:
                parser.read_string(f.read(), filename)

            remote = config.remote
            retry = config.retry
            ice = config.ice
            storage_options: Dict[str, Dict[str, Any]] = {}

            if "remote" in parser:
                remote = RemoteConfig.load(parser["remote"])
            if "retry" in parser:
                retry = RetryConfig.load(parser["retry"])
            if "ice" in parser:
                ice = IceConfig.load(parser["ice"])

            for name in parser.sections():
                if name.startswith("fs."):
                    storage_options[name[len("fs.") :]] = {
                        key: _coerce(value) for key, value in parser[name].items()
                    }

            config = Config(
                remote=remote, retry=retry, ice=ice, storage_options=storage_options
            )
        except FileNotFoundError:
            log.info(f"no config file at {filename}")
        except Exception as e:
            # An unreadable config file is not considered a fatal error since we can
            # fall back to defaults.
            log.error(f"failed to read config file {filename}: {e}")
        else:
            log.info(f"loaded config: {config.describe()}")

        return config
