"""
named.conf Pydantic schemas for the BIND control plane API
"""

import re
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator

DOMAIN_PATTERN = re.compile(r'^[A-Za-z0-9_]([A-Za-z0-9_-]{0,62})?(\.[A-Za-z0-9_]([A-Za-z0-9_-]{0,62})?)*\.?$')


class NamedConfContent(BaseModel):
    """Full configuration text"""
    content: str = Field(..., description="Complete named.conf text")


class DiffRequest(BaseModel):
    """Diff two revisions; the live file is used when old_content is omitted"""
    old_content: Optional[str] = Field(None, description="Baseline text (defaults to the live file)")
    new_content: str = Field(..., description="Candidate text")


class RestoreRequest(BaseModel):
    backup_path: str = Field(..., min_length=1, description="Snapshot file name or absolute path")


class ConfigElementSchema(BaseModel):
    """Serialized ConfigElement tree"""
    kind: str
    name: str = ""
    value: str = ""
    leading_comments: List[str] = Field(default_factory=list)
    trailing_comment: str = ""
    children: List["ConfigElementSchema"] = Field(default_factory=list)


class GenerateRequest(BaseModel):
    tree: ConfigElementSchema


class ZoneStanzaBase(BaseModel):
    zone_file: str = Field(..., min_length=1, max_length=255, description="Zone file path as written in named.conf")
    allow_query: Optional[str] = Field(None, max_length=255, description="ACL for allow-query (defaults to setting)")
    comment: str = Field("", max_length=1024, description="Comment lines written above the stanza")

    @field_validator('zone_file')
    @classmethod
    def validate_zone_file(cls, v):
        if any(char in v for char in '"\n\r;{}'):
            raise ValueError('Zone file name cannot contain quotes, semicolons, braces or line breaks')
        return v

    @field_validator('allow_query')
    @classmethod
    def validate_allow_query(cls, v):
        if v is not None and any(char in v for char in '"\n\r{}'):
            raise ValueError('allow-query cannot contain quotes, braces or line breaks')
        return v


class ZoneStanzaCreate(ZoneStanzaBase):
    domain: str = Field(..., min_length=1, max_length=253, description="Zone name")

    @field_validator('domain')
    @classmethod
    def validate_domain(cls, v):
        v = v.strip()
        if not DOMAIN_PATTERN.match(v) or '..' in v:
            raise ValueError(f"'{v}' is not a valid zone name")
        return v


class ZoneStanzaUpdate(ZoneStanzaBase):
    pass

