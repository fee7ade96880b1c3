"""
named.conf lifecycle: read, diff, validate, commit, restore and zone stanza edits
"""

import asyncio
import os
import re
import stat
import tempfile
import weakref
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from jinja2 import Environment, FileSystemLoader, select_autoescape

from ..core.config import Settings, get_settings
from ..core.exceptions import (
    ConfigIOError,
    ConfigRejected,
    ReloadAfterWriteFailed,
    SourceMissing,
    UnterminatedBlock,
    ZoneExists,
    ZoneNotFound,
)
from ..core.logging_config import get_namedconf_logger
from ..namedconf.backup import BackupRecord, BackupStore
from ..namedconf.diff import DiffResult, diff
from ..namedconf.elements import ConfigElement, ElementKind
from ..namedconf.generator import NamedConfGenerator
from ..namedconf.parser import NamedConfParser
from ..namedconf.validator import NamedConfValidator, ValidationResult
from .bind_service import BindService

# Mutations of one tracked file never interleave: one lock per file per event loop
_file_locks: "weakref.WeakKeyDictionary[asyncio.AbstractEventLoop, Dict[str, asyncio.Lock]]" = (
    weakref.WeakKeyDictionary()
)


def get_file_lock(path: Union[str, Path]) -> asyncio.Lock:
    """Lock for ``path`` in the running loop; call from a coroutine"""
    locks = _file_locks.setdefault(asyncio.get_running_loop(), {})
    key = os.path.abspath(str(path))
    lock = locks.get(key)
    if lock is None:
        lock = locks[key] = asyncio.Lock()
    return lock


def _zone_pattern(domain: str) -> re.Pattern:
    return re.compile(
        rf'^[ \t]*zone\s+"{re.escape(domain)}"(?:\s+IN)?\s*\{{',
        re.IGNORECASE | re.MULTILINE
    )


def append_zone_stanza(content: str, stanza: str) -> str:
    """Append a stanza so that exactly one blank line separates it from the text before"""
    if not content:
        return stanza
    trailing = len(content) - len(content.rstrip("\n"))
    if trailing == 0:
        content += "\n\n"
    elif trailing == 1:
        content += "\n"
    return content + stanza


def remove_zone_stanza(content: str, domain: str, path: Optional[str] = None) -> Optional[str]:
    """
    Cut the ``zone "<domain>"`` block, together with the comment and blank
    lines directly above it, out of ``content``. Returns None when the zone
    is not declared.
    """
    match = _zone_pattern(domain).search(content)
    if not match:
        return None

    # Walk back over the comment and blank lines above the stanza
    start = content.rfind("\n", 0, match.start()) + 1
    lines = content[:start].split("\n")[:-1]
    keep = len(lines)
    while keep > 0:
        line = lines[keep - 1].strip()
        if line and not line.startswith("//") and not line.startswith("#"):
            break
        keep -= 1
    start = sum(len(line) + 1 for line in lines[:keep])

    depth = 0
    in_quote = False
    end = None
    for i in range(match.end() - 1, len(content)):
        char = content[i]
        if char == '"':
            in_quote = not in_quote
        elif in_quote:
            continue
        elif char == "{":
            depth += 1
        elif char == "}":
            depth -= 1
            if depth == 0:
                end = i + 1
                break

    if end is None:
        line_number = content.count("\n", 0, match.start()) + 1
        raise UnterminatedBlock(f'Zone "{domain}" is never closed', line_number, path)

    while end < len(content) and content[end] == ";":
        end += 1

    return collapse_blank_lines(content[:start] + content[end:])


def collapse_blank_lines(content: str) -> str:
    result = []
    previous_blank = False
    for line in content.split("\n"):
        blank = not line.strip()
        if blank and previous_blank:
            continue
        result.append(line)
        previous_blank = blank
    return "\n".join(result)


class NamedConfService:
    """Safe-edit transactions over the tracked named.conf"""

    def __init__(
        self,
        settings: Optional[Settings] = None,
        bind_service: Optional[BindService] = None,
        validator: Optional[NamedConfValidator] = None,
        backup_store: Optional[BackupStore] = None
    ):
        settings = settings or get_settings()
        self.named_conf_path = os.path.abspath(str(settings.named_conf_path))
        self.validate_before_write = settings.VALIDATE_BEFORE_WRITE
        self.max_include_depth = settings.MAX_INCLUDE_DEPTH
        self.default_allow_query = settings.ZONE_DEFAULT_ALLOW_QUERY
        self.bind_service = bind_service or BindService(settings)
        self.validator = validator or NamedConfValidator(settings.NAMED_CHECKCONF, settings.VALIDATOR_TIMEOUT)
        self.backup_store = backup_store or BackupStore(str(settings.backup_dir), settings.MAX_BACKUPS)
        self.generator = NamedConfGenerator()
        self.logger = get_namedconf_logger()

        template_dir = Path(__file__).parent.parent / "templates"
        self.jinja_env = Environment(
            loader=FileSystemLoader(str(template_dir)),
            autoescape=select_autoescape(['html', 'xml']),
            trim_blocks=True,
            lstrip_blocks=True
        )

    # Reads

    def get_content(self) -> str:
        try:
            with open(self.named_conf_path, encoding="utf-8") as f:
                return f.read()
        except (OSError, UnicodeDecodeError) as e:
            raise ConfigIOError(
                f"Failed to read {self.named_conf_path}: {e}",
                details={"path": self.named_conf_path}
            ) from e

    def diff(self, old_content: str, new_content: str) -> DiffResult:
        return diff(old_content, new_content)

    def propose(self, new_content: str) -> DiffResult:
        """Diff candidate text against the live file"""
        return diff(self.get_content(), new_content)

    async def validate(self, content: str) -> ValidationResult:
        return await self.validator.validate_content(content)

    def parse(self) -> ConfigElement:
        parser = NamedConfParser(self.named_conf_path, max_include_depth=self.max_include_depth)
        return parser.parse()

    def generate(self, tree: Optional[ConfigElement]) -> str:
        return self.generator.generate(tree)

    def list_backups(self) -> List[BackupRecord]:
        return self.backup_store.list_backups(self.named_conf_path)

    def create_backup(self) -> BackupRecord:
        """Take a manual snapshot of the live file"""
        return self.backup_store.snapshot(self.named_conf_path)

    def delete_backup(self, backup_id: str) -> None:
        self.backup_store.delete_backup(backup_id)

    def list_zones(self) -> List[Dict[str, Any]]:
        """Zone blocks declared in the file and everything it includes"""
        zones: List[Dict[str, Any]] = []
        self._collect_zones(self.parse(), self.named_conf_path, zones)
        return zones

    # Mutations

    async def update_content(self, content: str) -> Optional[BackupRecord]:
        """
        Replace the live file with ``content``.

        Returns the pre-change snapshot (None when the file did not exist).
        """
        async with get_file_lock(self.named_conf_path):
            return await self._commit(content)

    async def restore_backup(self, backup_ref: str) -> Dict[str, Optional[str]]:
        """Copy a snapshot over the live file and reload"""
        async with get_file_lock(self.named_conf_path):
            source = self.backup_store.resolve(backup_ref)
            # Read first: the snapshot below may prune the one being restored
            data = self.backup_store.read_backup(source)

            pre_restore = self._snapshot_live_file()
            self._atomic_write(data)
            self.logger.info(f"Restored {self.named_conf_path} from {source}")

            await self._reload(pre_restore)
            return {
                "restored_from": str(source),
                "pre_restore_backup": pre_restore.path if pre_restore else None,
            }

    async def add_zone(
        self,
        domain: str,
        zone_file: str,
        allow_query: Optional[str] = None,
        comment: str = ""
    ) -> Optional[BackupRecord]:
        async with get_file_lock(self.named_conf_path):
            content = self.get_content()
            if _zone_pattern(domain).search(content):
                raise ZoneExists(f"Zone {domain} is already declared", details={"domain": domain})

            stanza = self.render_zone_stanza(domain, zone_file, allow_query, comment)
            return await self._commit(append_zone_stanza(content, stanza))

    async def remove_zone(self, domain: str) -> Optional[BackupRecord]:
        async with get_file_lock(self.named_conf_path):
            content = self._without_zone(self.get_content(), domain)
            return await self._commit(content)

    async def update_zone(
        self,
        domain: str,
        zone_file: str,
        allow_query: Optional[str] = None,
        comment: str = ""
    ) -> Optional[BackupRecord]:
        """Replace a zone stanza, comments included, in one commit"""
        async with get_file_lock(self.named_conf_path):
            content = self._without_zone(self.get_content(), domain)
            stanza = self.render_zone_stanza(domain, zone_file, allow_query, comment)
            return await self._commit(append_zone_stanza(content, stanza))

    def render_zone_stanza(
        self,
        domain: str,
        zone_file: str,
        allow_query: Optional[str] = None,
        comment: str = ""
    ) -> str:
        allow_query = (allow_query or self.default_allow_query).strip().rstrip(";").strip()
        comment_lines = [line.strip() for line in (comment or "").split("\n") if line.strip()]
        template = self.jinja_env.get_template("zone.conf.j2")
        return template.render(
            domain=domain,
            zone_file=zone_file,
            allow_query=allow_query,
            comment_lines=comment_lines
        ) + "\n"

    # Internals

    async def _commit(self, content: str) -> Optional[BackupRecord]:
        """Snapshot, validate, write, reload. Caller holds the file lock."""
        backup = self._snapshot_live_file()

        if self.validate_before_write:
            result = await self.validator.validate_content(content)
            if not result.valid:
                self.logger.warning(f"Rejected named.conf update: {result.error}")
                raise ConfigRejected(result)

        self._atomic_write(content)
        self.logger.info(f"Wrote {self.named_conf_path}")

        await self._reload(backup)
        return backup

    def _snapshot_live_file(self) -> Optional[BackupRecord]:
        try:
            return self.backup_store.snapshot(self.named_conf_path)
        except SourceMissing:
            self.logger.info(f"{self.named_conf_path} does not exist yet, no snapshot taken")
            return None

    async def _reload(self, backup: Optional[BackupRecord]) -> None:
        if await self.bind_service.reload_service():
            return
        backup_path = backup.path if backup else None
        self.logger.error(f"{self.named_conf_path} was written but BIND did not reload (backup: {backup_path})")
        raise ReloadAfterWriteFailed(self.named_conf_path, backup_path, reason="reload command failed")

    def _atomic_write(self, content: Union[str, bytes]) -> None:
        data = content.encode("utf-8") if isinstance(content, str) else content
        directory = os.path.dirname(self.named_conf_path)

        try:
            mode = stat.S_IMODE(os.stat(self.named_conf_path).st_mode)
        except FileNotFoundError:
            mode = 0o644
        except OSError as e:
            raise ConfigIOError(f"Cannot stat {self.named_conf_path}: {e}") from e

        try:
            fd, temp_path = tempfile.mkstemp(
                prefix=f".{os.path.basename(self.named_conf_path)}.", suffix=".tmp", dir=directory
            )
        except OSError as e:
            raise ConfigIOError(f"Cannot create temporary file in {directory}: {e}") from e

        try:
            with os.fdopen(fd, "wb") as f:
                f.write(data)
                f.flush()
                os.fsync(f.fileno())
            os.chmod(temp_path, mode)
            os.replace(temp_path, self.named_conf_path)
        except OSError as e:
            try:
                os.remove(temp_path)
            except FileNotFoundError:
                pass
            raise ConfigIOError(
                f"Failed to write {self.named_conf_path}: {e}",
                details={"path": self.named_conf_path}
            ) from e

    def _without_zone(self, content: str, domain: str) -> str:
        updated = remove_zone_stanza(content, domain, self.named_conf_path)
        if updated is None:
            raise ZoneNotFound(f"Zone {domain} is not declared", details={"domain": domain})
        return updated

    def _collect_zones(self, element: ConfigElement, source: str, zones: List[Dict[str, Any]]) -> None:
        for child in element.children:
            if child.kind == ElementKind.INCLUDE:
                self._collect_zones(child, child.value, zones)
            elif child.kind == ElementKind.BLOCK and child.name.lower() == "zone":
                options = {c.name: c.value for c in child.children if c.kind == ElementKind.SIMPLE}
                zones.append({
                    "name": child.value,
                    "type": options.get("type", ""),
                    "file": options.get("file", ""),
                    "source": source,
                })
            elif child.kind == ElementKind.BLOCK:
                # views nest their own zones
                self._collect_zones(child, source, zones)
