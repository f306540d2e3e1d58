"""
Configuration Constants and Settings
===================================

This module centralizes all configuration values used throughout the board server.
Runtime choices (directories, port, log level) arrive on the command line; everything
that should stay consistent between the scanner, the taxonomy loader and the HTTP
layer lives here.
"""

# Version information
VERSION = "1.0.0"
APPLICATION_NAME = "MITRE ATT&CK Coverage Board"

# MITRE ATT&CK data source - official repository URL
MITRE_ATTACK_URL = "https://raw.githubusercontent.com/mitre/cti/master/enterprise-attack/enterprise-attack.json"
MITRE_REQUEST_TIMEOUT = 30        # Timeout for HTTP requests in seconds
KILL_CHAIN_NAME = "mitre-attack"  # Only phases from this kill chain link techniques to tactics

# File processing settings
SUPPORTED_EXTENSIONS = {'.yaml', '.yml', '.json'}
YAML_EXTENSIONS = {'.yaml', '.yml'}
ENCODING = 'utf-8'
MAX_FILE_SIZE = 10 * 1024 * 1024  # 10MB per rule file

# Rule definition defaults
DEFAULT_DESCRIPTION = "No description available."

# Sub-techniques are written as <parent>.<suffix>, e.g. T1055.001
SUB_TECHNIQUE_SEPARATOR = "."

# HTTP server defaults
DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 3000
PORT_ENV_VAR = "PORT"  # Overrides DEFAULT_PORT when set

# Logging configuration
LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(funcName)s:%(lineno)d - %(message)s'
LOG_DATE_FORMAT = '%Y-%m-%d %H:%M:%S'


def get_banner() -> str:
    """Returns the application banner for CLI display."""
    banner = f"""
{'='*60}
{APPLICATION_NAME} v{VERSION}
{'='*60}
Coverage of active and not-yet-implemented detection rules
against the MITRE ATT&CK Enterprise matrix.
{'='*60}
"""
    return banner
