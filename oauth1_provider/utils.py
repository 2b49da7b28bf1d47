import logging
import os
import re
from typing import Any

logger = logging.getLogger(__name__)

MAX_ENV_VALUE_LENGTH = 4096


def sanitize_error_message(error: Any, context: str = None) -> str:
    """
    Sanitize error messages to prevent information disclosure.

    The detailed error is logged server-side; the returned message is
    generic and safe to send to clients.

    Args:
        error: The error object or error message string
        context: Optional context about where the error occurred

    Returns:
        Generic error message safe for client exposure
    """
    if context:
        logger.error(f"ERROR [{context}]: {error}")
        return f"Processing error occurred in {context}"
    logger.error(f"ERROR: {error}")
    return "An error occurred while processing the request"


def _clean_env_value(value: str, context_key: str = None) -> str:
    # Only null bytes and oversized values are altered
    if '\x00' in value:
        logger.warning(f"Environment variable value contains null byte (context: {context_key}), removing")
        value = value.replace('\x00', '')
    if len(value) > MAX_ENV_VALUE_LENGTH:
        logger.warning(
            f"Environment variable value too long (context: {context_key}): {len(value)} characters, truncating"
        )
        value = value[:MAX_ENV_VALUE_LENGTH]
    return value


def load_env_vars(data, visited=None, depth=0):
    """
    Replace environment variable placeholders in configuration data.

    Supports:
        "{$VAR}"            - whole value replaced with the variable
        "{$VAR:default}"    - variable, or default if unset
        "prefix-{$VAR}"     - variables embedded in strings

    Unset variables without a default raise ValueError.

    Args:
        data: Configuration data (dict, list, or primitive)
        visited: Set of object IDs already visited (circular reference guard)
        depth: Current recursion depth

    Returns:
        Data with environment variables substituted
    """
    MAX_RECURSION_DEPTH = 100
    if depth > MAX_RECURSION_DEPTH:
        raise ValueError("Configuration nesting too deep")

    if visited is None:
        visited = set()

    if isinstance(data, (dict, list)):
        data_id = id(data)
        if data_id in visited:
            return data
        visited.add(data_id)

    embedded_pattern = re.compile(r'\{\$(\w+)(?::([^}]*))?\}')

    def process_string(value, context_key=None):
        def replace(match):
            env_var = match.group(1)
            default = match.group(2)  # Can be None or empty string
            env_value = os.getenv(env_var)
            if env_value is not None:
                return _clean_env_value(env_value, context_key)
            if default is not None:
                return _clean_env_value(default, context_key)
            raise ValueError(f"Environment variable '{env_var}' not set and no default provided for key '{context_key}'")

        return embedded_pattern.sub(replace, value)

    try:
        if isinstance(data, dict):
            for key, value in data.items():
                if isinstance(value, str):
                    data[key] = process_string(value, key)
                else:
                    load_env_vars(value, visited, depth + 1)
        elif isinstance(data, list):
            for i, item in enumerate(data):
                if isinstance(item, str):
                    data[i] = process_string(item, f"list[{i}]")
                else:
                    load_env_vars(item, visited, depth + 1)
        elif isinstance(data, str):
            return process_string(data)
    finally:
        if isinstance(data, (dict, list)):
            visited.discard(id(data))

    return data
