"""
Configuration loader for Active Streams.

Supports loading configuration from:
1. config.ini file (recommended)
2. Environment variables (for automation/Docker)
"""

import configparser
import os
from typing import Optional, Tuple

from active_streams.models import DisplayOptions, ServerDescriptor

SERVER_SECTION_PREFIX = 'Server:'
ENV_PREFIX = 'ACTIVE_STREAMS_'

TRUE_VALUES = ('1', 'true', 'yes', 'on')


def parse_bool(value: Optional[str], default: bool = False) -> bool:
    """Parse 1/true/yes/on (case-insensitive) as True."""
    if value is None:
        return default
    return str(value).strip().lower() in TRUE_VALUES


def parse_port(value: Optional[str], source: str) -> int:
    """
    Parse a TCP port.

    Raises:
        ValueError: If the value is not an integer between 1 and 65535
    """
    try:
        port = int(str(value).strip())
    except (TypeError, ValueError):
        raise ValueError(f"Invalid port for {source}: {value!r}")
    if not 1 <= port <= 65535:
        raise ValueError(f"Invalid port for {source}: {port} (must be 1-65535)")
    return port


class ConfigLoader:
    """Load configuration from various sources."""

    def __init__(self, config_file: str = "config.ini"):
        """
        Initialize config loader.

        Args:
            config_file: Path to config file (default: config.ini)
        """
        self.config_file = config_file
        self.config = None

    def load_from_file(self) -> bool:
        """
        Load configuration from INI file.

        Returns:
            True if file was loaded successfully, False otherwise

        Raises:
            ValueError: If the file exists but cannot be parsed
        """
        if not os.path.exists(self.config_file):
            return False

        self.config = configparser.ConfigParser(interpolation=None)
        try:
            self.config.read(self.config_file)
        except configparser.Error as e:
            raise ValueError(f"Invalid config file: {e}")
        return True

    def get_server_descriptors(self) -> list[ServerDescriptor]:
        """
        Get server descriptors in file (or index) order.

        Returns:
            List of ServerDescriptor

        Raises:
            ValueError: If configuration is missing or invalid
        """
        # Try config file first
        if self.config:
            servers = []
            for section in self.config.sections():
                if not section.startswith(SERVER_SECTION_PREFIX):
                    continue
                name = section[len(SERVER_SECTION_PREFIX):].strip()
                try:
                    servers.append(ServerDescriptor(
                        type=self.config.get(section, 'type').strip().lower(),
                        name=name,
                        host=self.config.get(section, 'host').strip(),
                        port=parse_port(self.config.get(section, 'port'), f"[{section}]"),
                        token=self.config.get(section, 'token').strip(),
                        use_ssl=parse_bool(self.config.get(section, 'ssl', fallback='0')),
                        verify_ssl=parse_bool(self.config.get(section, 'ssl_verify', fallback='1')),
                    ))
                except configparser.NoOptionError as e:
                    raise ValueError(f"Invalid config file: {e}")

            if servers:
                return servers

        # Try environment variables
        servers = []
        index = 1
        while True:
            prefix = f"{ENV_PREFIX}SERVER_{index}_"
            env_name = os.getenv(f"{prefix}NAME")
            env_type = os.getenv(f"{prefix}TYPE")
            env_host = os.getenv(f"{prefix}HOST")
            env_port = os.getenv(f"{prefix}PORT")
            env_token = os.getenv(f"{prefix}TOKEN")

            if not all([env_name, env_type, env_host, env_port, env_token]):
                break

            servers.append(ServerDescriptor(
                type=env_type.strip().lower(),
                name=env_name,
                host=env_host.strip(),
                port=parse_port(env_port, f"{prefix}PORT"),
                token=env_token,
                use_ssl=parse_bool(os.getenv(f"{prefix}SSL")),
                verify_ssl=parse_bool(os.getenv(f"{prefix}VERIFY_SSL"), default=True),
            ))
            index += 1

        if servers:
            return servers

        raise ValueError(
            "No configuration found!\n\n"
            "Please create a config.ini file:\n"
            "  1. Copy config.ini.example to config.ini\n"
            "  2. Add one [Server:<name>] section per media server\n\n"
            "Or set environment variables:\n"
            "  ACTIVE_STREAMS_SERVER_1_NAME, ACTIVE_STREAMS_SERVER_1_TYPE, ACTIVE_STREAMS_SERVER_1_HOST,\n"
            "  ACTIVE_STREAMS_SERVER_1_PORT, ACTIVE_STREAMS_SERVER_1_TOKEN\n"
            "  (Optional) ACTIVE_STREAMS_SERVER_1_SSL, ACTIVE_STREAMS_SERVER_1_VERIFY_SSL"
        )

    def get_display_options(self) -> DisplayOptions:
        """
        Get display options.

        Returns:
            DisplayOptions with configured values
        """
        # Try config file first
        if self.config and self.config.has_section('Settings'):
            return DisplayOptions(
                show_episode_numbers=parse_bool(
                    self.config.get('Settings', 'show_episode_numbers', fallback='0')
                )
            )

        # Try environment variables
        return DisplayOptions(
            show_episode_numbers=parse_bool(os.getenv(f"{ENV_PREFIX}SHOW_EPISODE_NUMBERS"))
        )


def load_config(config_file: str = "config.ini") -> Tuple[list[ServerDescriptor], DisplayOptions]:
    """
    Convenience function to load all configuration.

    Args:
        config_file: Path to config file

    Returns:
        Tuple of (servers, display_options)

    Raises:
        ValueError: If configuration is missing or invalid
    """
    loader = ConfigLoader(config_file)
    loader.load_from_file()

    servers = loader.get_server_descriptors()
    options = loader.get_display_options()

    return servers, options
