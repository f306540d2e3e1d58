"""
Taxonomy Data Model
===================

Frozen node classes for the normalized MITRE ATT&CK hierarchy:

    Tactic -> Technique -> Technique (sub-technique)

Nodes are created once by the TaxonomyNormalizer and never modified afterwards;
child collections are tuples and the lookup tables are read-only mappings. The
serialized form keeps the STIX field names the browser client already knows
(``external_references``, ``x_mitre_shortname`` ...) next to the normalized ones.
"""

from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional, Tuple


@dataclass(frozen=True)
class Technique:
    """
    A technique or sub-technique node.

    Attributes:
        public_id: ATT&CK external ID (e.g. 'T1055' or 'T1055.001')
        stix_id: STIX object identifier ('attack-pattern--...')
        name: Technique name
        description: Technique description (may be empty)
        url: Link to the technique page on attack.mitre.org, if present
        tactic_shortnames: Kill chain phase names the technique belongs to
        is_sub_technique: Whether the STIX object is flagged as a sub-technique
        sub_techniques: Child sub-techniques, sorted by name
    """

    public_id: str
    stix_id: str
    name: str
    description: str = ""
    url: Optional[str] = None
    tactic_shortnames: Tuple[str, ...] = ()
    is_sub_technique: bool = False
    sub_techniques: Tuple['Technique', ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.stix_id,
            'type': 'attack-pattern',
            'publicId': self.public_id,
            'name': self.name,
            'description': self.description,
            'external_references': [_external_reference(self.public_id, self.url)],
            'x_mitre_is_subtechnique': self.is_sub_technique,
            'tacticShortnames': list(self.tactic_shortnames),
            'subTechniques': [sub.to_dict() for sub in self.sub_techniques]
        }


@dataclass(frozen=True)
class Tactic:
    """
    A tactic node with its (non sub-) techniques.

    Attributes:
        public_id: ATT&CK external ID (e.g. 'TA0005')
        stix_id: STIX object identifier ('x-mitre-tactic--...')
        name: Tactic name (e.g. 'Defense Evasion')
        shortname: Kill chain phase name used by techniques (e.g. 'defense-evasion')
        description: Tactic description
        url: Link to the tactic page, if present
        techniques: Member techniques, sorted by name
    """

    public_id: str
    stix_id: str
    name: str
    shortname: str
    description: str = ""
    url: Optional[str] = None
    techniques: Tuple[Technique, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.stix_id,
            'type': 'x-mitre-tactic',
            'publicId': self.public_id,
            'name': self.name,
            'description': self.description,
            'x_mitre_shortname': self.shortname,
            'external_references': [_external_reference(self.public_id, self.url)],
            'techniques': [technique.to_dict() for technique in self.techniques]
        }


@dataclass(frozen=True)
class MitreData:
    """
    The complete normalized taxonomy.

    Attributes:
        tactics: Tactics sorted by name
        techniques_by_id: Every technique and sub-technique keyed by public ID
        tactics_by_id: Every tactic keyed by public ID
        spec_version: STIX bundle ``spec_version`` if the document carried one
    """

    tactics: Tuple[Tactic, ...]
    techniques_by_id: Mapping[str, Technique]
    tactics_by_id: Mapping[str, Tactic]
    spec_version: Optional[str] = None

    def __post_init__(self):
        # Lookup tables are exposed read-only once the document is built
        object.__setattr__(self, 'techniques_by_id', MappingProxyType(dict(self.techniques_by_id)))
        object.__setattr__(self, 'tactics_by_id', MappingProxyType(dict(self.tactics_by_id)))

    def get_technique(self, public_id: str) -> Optional[Technique]:
        return self.techniques_by_id.get(public_id)

    def to_dict(self) -> Dict[str, Any]:
        """Serialize the whole tree as the single document served to clients."""
        return {
            'tactics': [tactic.to_dict() for tactic in self.tactics],
            'techniquesById': {
                public_id: technique.to_dict()
                for public_id, technique in self.techniques_by_id.items()
            },
            'tacticsById': {
                public_id: tactic.to_dict()
                for public_id, tactic in self.tactics_by_id.items()
            }
        }

    def __str__(self) -> str:
        return f"MitreData(tactics={len(self.tactics)}, techniques={len(self.techniques_by_id)})"


def _external_reference(public_id: str, url: Optional[str]) -> Dict[str, str]:
    reference = {'source_name': 'mitre-attack', 'external_id': public_id}
    if url:
        reference['url'] = url
    return reference
