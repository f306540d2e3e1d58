"""
MITRE ATT&CK Coverage Board
===========================

Scans local detection rule definitions, aggregates their MITRE ATT&CK
associations into coverage counts and serves the taxonomy, the counts and the
rule catalogue to a browser client.
"""

from .config import VERSION

__version__ = VERSION
