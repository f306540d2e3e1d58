"""
MITRE ATT&CK Taxonomy Loader
============================

Fetches the raw ATT&CK Enterprise STIX bundle, either from the official MITRE
CTI repository over HTTPS or from a local copy of the same JSON file.

The loader does not interpret the bundle beyond a shape check (a JSON object
with an ``objects`` list); turning STIX objects into the tactic tree is the
TaxonomyNormalizer's job.

Failure here is fatal for startup: without the taxonomy the board has nothing
to draw, so every problem - network error, non-2xx status, invalid JSON, wrong
shape - is raised as TaxonomyLoadError and no request is retried.
"""

import json
import logging
import time
from typing import Any, Dict, Optional

import requests

from ..config import APPLICATION_NAME, ENCODING, MITRE_ATTACK_URL, MITRE_REQUEST_TIMEOUT, VERSION
from ..errors import TaxonomyLoadError

logger = logging.getLogger(__name__)


class TaxonomyLoader:
    """
    Loads the ATT&CK STIX bundle from a URL or a file.

    Attributes:
        url: Bundle URL used when no local file is configured
        file_path: Local bundle path; takes precedence over ``url``
        timeout: HTTP timeout in seconds
    """

    def __init__(self,
                 url: str = MITRE_ATTACK_URL,
                 file_path: Optional[str] = None,
                 timeout: int = MITRE_REQUEST_TIMEOUT,
                 session: Optional[requests.Session] = None):
        self.url = url
        self.file_path = file_path
        self.timeout = timeout
        self._session = session or self._create_session()

    @staticmethod
    def _create_session() -> requests.Session:
        """HTTP session with headers for the MITRE repository."""
        session = requests.Session()
        session.headers.update({
            'User-Agent': f'{APPLICATION_NAME.replace(" ", "-")}/{VERSION}',
            'Accept': 'application/json',
            'Accept-Encoding': 'gzip, deflate'
        })
        return session

    @property
    def source(self) -> str:
        """Human-readable description of where the bundle comes from."""
        return self.file_path or self.url

    def load(self) -> Dict[str, Any]:
        """
        Load and shape-check the STIX bundle.

        Returns:
            Dict[str, Any]: The decoded bundle

        Raises:
            TaxonomyLoadError: If the bundle cannot be fetched, read or decoded
        """
        start_time = time.time()
        if self.file_path:
            document = self._read_file(self.file_path)
        else:
            document = self._fetch(self.url)

        self._check_shape(document)
        logger.info(f"Loaded MITRE ATT&CK bundle with {len(document['objects'])} objects "
                    f"from {self.source} in {time.time() - start_time:.2f} seconds")
        return document

    def _fetch(self, url: str) -> Any:
        logger.info(f"Fetching MITRE ATT&CK data from {url}...")
        try:
            response = self._session.get(url, timeout=self.timeout)
        except requests.RequestException as e:
            raise TaxonomyLoadError(f"Network error fetching MITRE ATT&CK data from {url}: {e}") from e

        if not response.ok:
            raise TaxonomyLoadError(
                f"Failed to fetch MITRE ATT&CK data from {url}: HTTP {response.status_code}"
            )

        try:
            return response.json()
        except ValueError as e:
            raise TaxonomyLoadError(f"Invalid JSON in MITRE ATT&CK data from {url}: {e}") from e

    @staticmethod
    def _read_file(file_path: str) -> Any:
        logger.info(f"Reading MITRE ATT&CK data from {file_path}...")
        try:
            with open(file_path, 'r', encoding=ENCODING) as f:
                return json.load(f)
        except OSError as e:
            raise TaxonomyLoadError(f"Cannot read MITRE ATT&CK file {file_path}: {e}") from e
        except ValueError as e:
            raise TaxonomyLoadError(f"Invalid JSON in MITRE ATT&CK file {file_path}: {e}") from e

    def _check_shape(self, document: Any) -> None:
        if not isinstance(document, dict) or not isinstance(document.get('objects'), list):
            raise TaxonomyLoadError(
                f"Invalid MITRE ATT&CK data structure from {self.source}: missing 'objects' list"
            )
