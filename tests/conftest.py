"""
MITRE Board - Root Test Configuration

Pytest fixtures shared by all tests: rule directories written into tmp_path,
a miniature ATT&CK STIX bundle and a fully built BoardContext.
"""

import sys
from pathlib import Path

ROOT_DIR = Path(__file__).parent.parent
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

import json
from typing import Any, Dict, Union
from unittest.mock import Mock

import pytest
import yaml

from mitre_board.core.board_context import BoardSettings, build_context
from mitre_board.core.taxonomy_loader import TaxonomyLoader
from mitre_board.core.taxonomy_normalizer import TaxonomyNormalizer


def _tactic(public_id: str, name: str, shortname: str) -> Dict[str, Any]:
    return {
        "type": "x-mitre-tactic",
        "id": f"x-mitre-tactic--{public_id.lower()}",
        "name": name,
        "description": f"{name} tactic",
        "x_mitre_shortname": shortname,
        "external_references": [
            {"source_name": "mitre-attack", "external_id": public_id,
             "url": f"https://attack.mitre.org/tactics/{public_id}"}
        ],
    }


def _technique(public_id: str, name: str, phases, is_sub: bool = False, **extra) -> Dict[str, Any]:
    obj = {
        "type": "attack-pattern",
        "id": f"attack-pattern--{public_id.lower()}",
        "name": name,
        "description": f"{name} technique",
        "x_mitre_is_subtechnique": is_sub,
        "kill_chain_phases": [
            {"kill_chain_name": "mitre-attack", "phase_name": phase} for phase in phases
        ],
        "external_references": [
            {"source_name": "mitre-attack", "external_id": public_id,
             "url": f"https://attack.mitre.org/techniques/{public_id.replace('.', '/')}"}
        ],
    }
    obj.update(extra)
    return obj


@pytest.fixture
def stix_bundle() -> Dict[str, Any]:
    """Miniature enterprise-attack bundle with two tactics and a few techniques."""
    process_injection = _technique("T1055", "Process Injection", ["defense-evasion", "privilege-escalation"])
    process_injection["kill_chain_phases"].append(
        {"kill_chain_name": "other-chain", "phase_name": "credential-access"}
    )
    return {
        "type": "bundle",
        "id": "bundle--test",
        "spec_version": "2.1",
        "objects": [
            _tactic("TA0006", "Credential Access", "credential-access"),
            _tactic("TA0005", "Defense Evasion", "defense-evasion"),
            _technique("T1003", "OS Credential Dumping", ["credential-access"]),
            _technique("T1003.002", "Security Account Manager", ["credential-access"], is_sub=True),
            _technique("T1003.001", "LSASS Memory", ["credential-access"], is_sub=True),
            process_injection,
            _technique("T1055.001", "Dynamic-link Library Injection", ["defense-evasion"], is_sub=True),
            _technique("T1027", "Obfuscated Files or Information", ["defense-evasion"]),
            _technique("T9999.001", "Orphaned Sub-technique", ["defense-evasion"], is_sub=True),
            _technique("T1000", "Revoked Technique", ["defense-evasion"], revoked=True),
            {"type": "intrusion-set", "id": "intrusion-set--apt", "name": "APT Test"},
        ],
    }


@pytest.fixture
def mitre_data(stix_bundle):
    return TaxonomyNormalizer().normalize(stix_bundle)


@pytest.fixture
def write_rule():
    """Factory writing a rule file; dicts are dumped as YAML (or JSON for .json)."""
    def _write(directory: Path, name: str, content: Union[str, Dict[str, Any]]) -> Path:
        path = Path(directory) / name
        path.parent.mkdir(parents=True, exist_ok=True)
        if isinstance(content, dict):
            if path.suffix == ".json":
                content = json.dumps(content)
            else:
                content = yaml.safe_dump(content, sort_keys=False)
        path.write_text(content, encoding="utf-8")
        return path
    return _write


@pytest.fixture
def active_dir(tmp_path, write_rule) -> Path:
    directory = tmp_path / "active"
    directory.mkdir()
    write_rule(directory, "a1.yaml", {
        "id": "A1",
        "title": "LSASS access",
        "description": "Detects reads of LSASS memory",
        "tactics": ["TA0006"],
        "relevantTechniques": ["T1003", "T1003.001"],
    })
    write_rule(directory, "nested/a2.yml", {
        "id": "A2",
        "name": "Remote thread injection",
        "tactics": ["TA0005"],
        "relevantTechniques": ["T1055"],
    })
    write_rule(directory, "README.md", "# not a rule\n")
    return directory


@pytest.fixture
def inactive_dir(tmp_path, write_rule) -> Path:
    directory = tmp_path / "inactive"
    directory.mkdir()
    write_rule(directory, "i1.yaml", {
        "id": "I1",
        "title": "SAM dump",
        "tactics": ["TA0006"],
        "relevantTechniques": ["T1003.002"],
    })
    write_rule(directory, "i2.yaml", {
        "id": "I2",
        "title": "Obfuscation",
        "tactics": ["TA0005"],
        "relevantTechniques": ["T1027"],
    })
    write_rule(directory, "i3.json", {
        "id": "I3",
        "title": "Already covered",
        "tactics": ["TA0006"],
        "relevantTechniques": ["T1003"],
    })
    write_rule(directory, "i4.yaml", {
        "id": "I4",
        "title": "Obfuscation variant",
        "relevantTechniques": ["T1027", "T1055.001"],
    })
    return directory


@pytest.fixture
def taxonomy_loader(stix_bundle):
    """Loader double returning the miniature bundle without network access."""
    loader = Mock(spec=TaxonomyLoader)
    loader.load.return_value = stix_bundle
    return loader


@pytest.fixture
def board_context(active_dir, inactive_dir, taxonomy_loader):
    settings = BoardSettings(active_directory=str(active_dir), inactive_directory=str(inactive_dir))
    return build_context(settings, loader=taxonomy_loader)
