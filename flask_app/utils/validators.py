"""
Form validation utilities.
"""
import ipaddress
import re
from typing import List, Dict, Any

from active_streams.models import ServerType

MAX_NAME_LENGTH = 100

HOSTNAME_LABEL = re.compile(r'^(?!-)[A-Za-z0-9-]{1,63}(?<!-)$')


def is_valid_host(host: str) -> bool:
    """Accept IPv4/IPv6 literals, 'localhost' and RFC 1123 hostnames."""
    host = (host or '').strip()
    if not host:
        return False

    try:
        ipaddress.ip_address(host.strip('[]'))
        return True
    except ValueError:
        pass

    if host == 'localhost':
        return True

    if len(host) > 253:
        return False
    labels = host.rstrip('.').split('.')
    # All-numeric dotted names are malformed IPv4 addresses, not hostnames
    if all(label.isdigit() for label in labels):
        return False
    return all(HOSTNAME_LABEL.match(label) for label in labels)


def is_valid_port(port: Any) -> bool:
    try:
        value = int(str(port).strip())
    except (TypeError, ValueError):
        return False
    return 1 <= value <= 65535


def validate_server_config(data: Dict[str, Any]) -> List[str]:
    """
    Validate server configuration data.

    Args:
        data: Dictionary with 'server_type', 'name', 'host', 'port', 'token'

    Returns:
        List of error messages (empty if valid)
    """
    errors = []

    # Validate type
    if ServerType.parse(data.get('server_type')) is None:
        errors.append('Invalid server type.')

    # Validate name
    name = data.get('name') or ''
    if not name.strip():
        errors.append('Server name is required.')
    elif len(name) > MAX_NAME_LENGTH:
        errors.append(f'Server name too long (max {MAX_NAME_LENGTH} characters).')

    # Validate host
    if not data.get('host') or not data['host'].strip():
        errors.append('Host is required.')
    elif not is_valid_host(data['host']):
        errors.append('Invalid host IP/hostname.')

    # Validate port
    if not is_valid_port(data.get('port')):
        errors.append('Invalid port number (must be 1-65535).')

    # Validate token
    if not data.get('token') or not data['token'].strip():
        errors.append('API token/key is required.')

    return errors
