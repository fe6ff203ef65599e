"""
Evidence Models - Raw evidentiary inputs, case context and verified fragments

Raw inputs are supplied by an ingestion collaborator and are read-only to the
pipeline. A Fragment is produced only for inputs the verifier accepts and is
never modified afterwards.
"""

from datetime import date, datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, Field, field_validator


def as_utc(value: datetime) -> datetime:
    """Interpret naive datetimes as UTC and normalise aware ones to UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class SourceType(str, Enum):
    """Origin category of a raw evidentiary record"""
    CAVE_CARVING = "cave_carving"
    ANCIENT_MANUSCRIPT = "ancient_manuscript"
    HISTORICAL_ARCHIVE = "historical_archive"
    ORAL_TRADITION = "oral_tradition"
    WRITTEN_RECORD = "written_record"
    LEGAL_DOCUMENT = "legal_document"
    FINANCIAL_RECORD = "financial_record"
    GOVERNMENT_DATABASE = "government_database"
    CORPORATE_RECORD = "corporate_record"
    DIGITAL_TRACE = "digital_trace"
    WITNESS_STATEMENT = "witness_statement"
    PHYSICAL_EVIDENCE = "physical_evidence"
    SCIENTIFIC_ANALYSIS = "scientific_analysis"
    SURVEILLANCE_DATA = "surveillance_data"
    COMMUNICATION_INTERCEPT = "communication_intercept"
    OSINT_COLLECTION = "osint_collection"


class FragmentType(str, Enum):
    """Evidentiary role of a verified fragment"""
    SURVIVOR_TESTIMONY = "survivor_testimony"
    PHYSICAL_EVIDENCE = "physical_evidence"
    ENVIRONMENTAL_FACTOR = "environmental_factor"
    LOCATION_DATA = "location_data"
    FINANCIAL_TRACE = "financial_trace"
    COMMUNICATION_RECORD = "communication_record"
    DOCUMENT_ARTIFACT = "document_artifact"
    DIGITAL_FOOTPRINT = "digital_footprint"
    RELATIONSHIP_LINK = "relationship_link"
    TEMPORAL_MARKER = "temporal_marker"
    BEHAVIORAL_PATTERN = "behavioral_pattern"
    HISTORICAL_RECORD = "historical_record"
    SCIENTIFIC_DATA = "scientific_data"
    ORAL_HISTORY = "oral_history"
    INSTITUTIONAL_RECORD = "institutional_record"


class CaseType(str, Enum):
    """Kind of investigation a case belongs to"""
    MISSING_PERSON = "missing_person"
    MISSING_ASSET = "missing_asset"
    HIDDEN_WEALTH = "hidden_wealth"
    FRAUD = "fraud"
    CORRUPTION = "corruption"
    PREDATORY_LENDING = "predatory_lending"
    FINANCIAL_CRIME = "financial_crime"
    IDENTITY_THEFT = "identity_theft"
    MONEY_LAUNDERING = "money_laundering"
    ASSET_TRACING = "asset_tracing"
    WITNESS_PROTECTION = "witness_protection"
    HISTORICAL_INVESTIGATION = "historical_investigation"


class Jurisdiction(str, Enum):
    """Legal jurisdiction tags"""
    IE = "IE"
    UK = "UK"
    NI = "NI"
    SC = "SC"
    WA = "WA"
    EN = "EN"
    ES = "ES"
    EU = "EU"
    GLOBAL = "GLOBAL"


SOURCE_TO_FRAGMENT_TYPE: Dict[SourceType, FragmentType] = {
    SourceType.CAVE_CARVING: FragmentType.HISTORICAL_RECORD,
    SourceType.ANCIENT_MANUSCRIPT: FragmentType.HISTORICAL_RECORD,
    SourceType.HISTORICAL_ARCHIVE: FragmentType.HISTORICAL_RECORD,
    SourceType.ORAL_TRADITION: FragmentType.ORAL_HISTORY,
    SourceType.WRITTEN_RECORD: FragmentType.DOCUMENT_ARTIFACT,
    SourceType.LEGAL_DOCUMENT: FragmentType.DOCUMENT_ARTIFACT,
    SourceType.FINANCIAL_RECORD: FragmentType.FINANCIAL_TRACE,
    SourceType.GOVERNMENT_DATABASE: FragmentType.INSTITUTIONAL_RECORD,
    SourceType.CORPORATE_RECORD: FragmentType.INSTITUTIONAL_RECORD,
    SourceType.DIGITAL_TRACE: FragmentType.DIGITAL_FOOTPRINT,
    SourceType.WITNESS_STATEMENT: FragmentType.SURVIVOR_TESTIMONY,
    SourceType.PHYSICAL_EVIDENCE: FragmentType.PHYSICAL_EVIDENCE,
    SourceType.SCIENTIFIC_ANALYSIS: FragmentType.SCIENTIFIC_DATA,
    SourceType.SURVEILLANCE_DATA: FragmentType.LOCATION_DATA,
    SourceType.COMMUNICATION_INTERCEPT: FragmentType.COMMUNICATION_RECORD,
    SourceType.OSINT_COLLECTION: FragmentType.DIGITAL_FOOTPRINT,
}


def parse_source_type(value: str) -> Optional[SourceType]:
    """Return the SourceType for a tag, or None when the tag is not recognised."""
    try:
        return SourceType(value)
    except ValueError:
        return None


class ProvenanceRecord(BaseModel):
    """One hand-off in the history of a raw record"""

    model_config = {"frozen": True}

    timestamp: datetime = Field(..., description="When the record was handled")
    source: str = Field(..., description="Where the record was obtained")
    method: str = Field(..., description="How the record was obtained")
    handler: str = Field(..., description="Who handled the record")
    verified: bool = Field(False, description="Whether this hand-off was independently verified")

    @field_validator("timestamp")
    @classmethod
    def normalise_timestamp(cls, value: datetime) -> datetime:
        return as_utc(value)


class RawInput(BaseModel):
    """
    Unverified evidentiary record.

    ``source_type`` is kept as a plain tag so that an unrecognised kind is
    reported by the reality checks instead of failing model validation.
    Missing required fields raise a pydantic ValidationError.
    """

    model_config = {
        "frozen": True,
        "json_schema_extra": {
            "examples": [
                {
                    "id": "input-001",
                    "source": "Companies Registration Office",
                    "source_type": "corporate_record",
                    "content": "Director resigned two days before account IE12BOFI90001710027952 was closed",
                    "timestamp": "2024-03-01T09:30:00Z",
                    "jurisdiction": "IE",
                    "provenance": [
                        {
                            "timestamp": "2024-03-02T10:00:00Z",
                            "source": "CRO portal",
                            "method": "registry_download",
                            "handler": "analyst-7",
                            "verified": True,
                        }
                    ],
                }
            ]
        },
    }

    id: str = Field(..., min_length=1, description="Caller-assigned input identifier")
    source: str = Field(..., description="Name of the originating source")
    source_type: str = Field(..., description="One of the SourceType tags")
    content: str = Field(..., description="Free-text content of the record")
    timestamp: datetime = Field(..., description="When the record was created")
    jurisdiction: Jurisdiction = Field(..., description="Jurisdiction the record belongs to")
    provenance: List[ProvenanceRecord] = Field(default_factory=list, description="Chain of hand-offs")
    metadata: Dict[str, Any] = Field(default_factory=dict, description="Opaque ingestion metadata")

    @field_validator("timestamp")
    @classmethod
    def normalise_timestamp(cls, value: datetime) -> datetime:
        return as_utc(value)


class CaseContext(BaseModel):
    """Immutable per-case parameters supplied once per pipeline run"""

    model_config = {"frozen": True}

    case_id: str = Field(..., min_length=1, description="Case identifier")
    case_type: CaseType = Field(..., description="Kind of investigation")
    start_date: datetime = Field(..., description="Start of the case timeline")
    jurisdictions: List[Jurisdiction] = Field(..., min_length=1, description="Applicable jurisdictions")
    subjects: List[str] = Field(default_factory=list, description="Names or entities under investigation")
    keywords: List[str] = Field(default_factory=list, description="Relevance hints")

    @field_validator("start_date", mode="before")
    @classmethod
    def coerce_date(cls, value: Union[str, date, datetime]) -> Union[str, datetime]:
        if isinstance(value, date) and not isinstance(value, datetime):
            return datetime(value.year, value.month, value.day, tzinfo=timezone.utc)
        return value

    @field_validator("start_date")
    @classmethod
    def normalise_start_date(cls, value: datetime) -> datetime:
        return as_utc(value)


class ChainOfCustodyEntry(BaseModel):
    """Append-only custody log entry carried by a Fragment"""

    model_config = {"frozen": True}

    timestamp: datetime
    handler: str
    action: str
    location: str
    hash: str = Field(..., description="sha256 of the custody record")


class Fragment(BaseModel):
    """
    Accepted, verified unit of evidence.

    The verification level is not gated here: any accepted input yields a
    Fragment. Reconstruction applies its own stricter gate.
    """

    model_config = {"frozen": True}

    id: str = Field(..., description="Fragment identifier")
    input_id: Optional[str] = Field(None, description="RawInput this fragment was verified from")
    fragment_type: FragmentType
    content: str
    source: str
    verification_level: int = Field(..., ge=1, le=10)
    confidence: float = Field(..., ge=0.0, le=100.0)
    timestamp: datetime
    jurisdiction: Jurisdiction
    metadata: Dict[str, Any] = Field(default_factory=dict)
    chain_of_custody: List[ChainOfCustodyEntry] = Field(default_factory=list)
    is_real: bool
    is_true: bool
    is_needed: bool

    @field_validator("timestamp")
    @classmethod
    def normalise_timestamp(cls, value: datetime) -> datetime:
        return as_utc(value)
