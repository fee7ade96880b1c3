# Services package

from .bind_service import BindService
from .named_conf_service import NamedConfService

__all__ = [
    'BindService',
    'NamedConfService',
]
