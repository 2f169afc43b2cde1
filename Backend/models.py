"""
Centralized Pydantic Data Models for WebGuard AI
"""
from datetime import datetime
from typing import List, Optional
from pydantic import BaseModel, ConfigDict, Field


class SSLResult(BaseModel):
    """SSL/HTTPS probe result (expires/issuer are placeholders, no cert inspection)"""
    valid: bool
    protocol: str
    expires: str
    issuer: str
    status: str  # active, error


class HeadersResult(BaseModel):
    """Partition of the security header checklist"""
    present: List[str] = []
    missing: List[str] = []


class VulnerabilityResult(BaseModel):
    xss: bool = False
    sqli: bool = False
    csrf: bool = False  # Never computed


class DNSResult(BaseModel):
    records: List[str] = []
    hostname: str = ""


class WhoisResult(BaseModel):
    registrar: str = "Unknown"
    created: str = "Unknown"
    expires: str = "Unknown"
    domain: str = ""
    note: str = "WHOIS lookup requires external API or service"


class ScanRecord(BaseModel):
    """
    Composite result of one website scan.

    Attribute names are short (ssl, headers, ...); the API and the `scans`
    table use the suffixed column names (ssl_data, headers_data, ...).
    """
    model_config = ConfigDict(populate_by_name=True)

    id: Optional[str] = None
    url: str
    score: int = Field(ge=0, le=100)
    ssl: SSLResult = Field(alias="ssl_data")
    headers: HeadersResult = Field(alias="headers_data")
    vulnerabilities: VulnerabilityResult = Field(alias="vulnerabilities_data")
    dns: DNSResult = Field(alias="dns_data")
    whois: WhoisResult = Field(alias="whois_data")
    recommendations: List[str] = []
    owner: Optional[str] = Field(default=None, alias="user_id")
    created_at: Optional[datetime] = None

    def to_wire(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)


class ScanRequest(BaseModel):
    url: Optional[str] = None
    userId: Optional[str] = None


class ScanSummary(BaseModel):
    url: str
    score: int


class AssistantRequest(BaseModel):
    message: Optional[str] = None
    recommendations: List[str] = []
    scanData: Optional[ScanSummary] = None
