# Schemas package

from .named_conf import (
    ConfigElementSchema,
    DiffRequest,
    GenerateRequest,
    NamedConfContent,
    RestoreRequest,
    ZoneStanzaCreate,
    ZoneStanzaUpdate,
)

__all__ = [
    'ConfigElementSchema',
    'DiffRequest',
    'GenerateRequest',
    'NamedConfContent',
    'RestoreRequest',
    'ZoneStanzaCreate',
    'ZoneStanzaUpdate',
]
