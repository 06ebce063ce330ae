"""Store manager for linked entry databases.

This module writes entries into ``<root>/<type>/<name>.<ext>`` files and
reads them back. Each write and read binds a ResolutionContext so link
fields nested anywhere in the entry can recurse into the same manager.
"""

from __future__ import annotations

from pathlib import Path
from typing import TypeVar

from pydantic import BaseModel, ValidationError

from core.checksum import checksum_bytes, checksum_file
from core.config import MosaicConfig
from core.constants import ADJUSTED_NAME_SEPARATOR, TEXT_ENCODING
from core.errors import (
    EntryNotFoundError,
    LinkNotFoundError,
    MosaicDecodeError,
    MosaicEncodeError,
    MosaicError,
    MosaicIOError,
    WriteConflictError,
)
from core.logging_config import get_logger
from core.types import ChecksumMismatch, ReadReport, WriteOptions, WriteReport
from store.entry import DEFAULT_REGISTRY, Entry, EntryRegistry, EntryT, validate_name
from store.entry_paths import adjusted_name, entry_file_name, entry_path, type_dir
from store.formats import Format, resolve_format
from store.links import EntryLink
from store.resolution_context import ResolutionContext, bind_context
from store.shared_cache import SharedCache

_LOGGER = get_logger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)


class StoreManager:
    """File-system database of linked entries.

    A manager owns a root directory, a format adapter, a shared cache and
    an entry registry. Writing an entry also writes every linked component
    as its own file; reading resolves links back into values and shares
    instances of shared links through the cache.
    """

    def __init__(
        self,
        root: Path,
        data_format: Format,
        cache: SharedCache | None = None,
        registry: EntryRegistry | None = None,
        default_options: WriteOptions | None = None,
    ) -> None:
        """Initialize a manager over an existing root directory.

        Args:
            root: Database root directory.
            data_format: Format adapter for entry files.
            cache: Shared cache; a fresh one when omitted.
            registry: Entry registry; the default registry when omitted.
            default_options: Options used when write() gets none.
        """
        self._root = root
        self._format = data_format
        self._cache = cache if cache is not None else SharedCache()
        self._registry = registry if registry is not None else DEFAULT_REGISTRY
        self._default_options = default_options if default_options is not None else WriteOptions()

    @classmethod
    def open(
        cls,
        root: str | Path,
        data_format: Format | str = "yaml",
        cache: SharedCache | None = None,
        registry: EntryRegistry | None = None,
        create: bool = True,
        default_options: WriteOptions | None = None,
    ) -> "StoreManager":
        """Open a database root, creating it when allowed.

        Args:
            root: Database root directory.
            data_format: Format adapter or format name.
            cache: Shared cache to use.
            registry: Entry registry to use.
            create: Create the root when it does not exist.
            default_options: Options used when write() gets none.

        Returns:
            Store manager bound to the root.

        Raises:
            MosaicIOError: If the root is not a directory or cannot be created.
        """
        root_path = Path(root).expanduser()
        if root_path.exists() and not root_path.is_dir():
            raise MosaicIOError(
                f"Database root {root_path} exists but is not a directory. "
                "Choose a directory path for the database."
            )
        if not root_path.exists():
            if not create:
                raise MosaicIOError(
                    f"Could not find database root {root_path}. "
                    "Create it first or open with create=True."
                )
            try:
                root_path.mkdir(parents=True, exist_ok=True)
            except OSError as error:
                raise MosaicIOError(
                    f"Could not create database root {root_path}: {error}. "
                    "Check permissions of the parent directory."
                ) from error
        resolved_format = resolve_format(data_format) if isinstance(data_format, str) else data_format
        _LOGGER.info("store_opened", root=str(root_path), extension=resolved_format.extension)
        return cls(root_path, resolved_format, cache, registry, default_options)

    @classmethod
    def from_config(cls, config: MosaicConfig, cache: SharedCache | None = None) -> "StoreManager":
        """Open the database described by a runtime config."""
        return cls.open(
            config.db_root,
            config.format_name,
            cache=cache,
            default_options=config.write_options(),
        )

    @property
    def root(self) -> Path:
        return self._root

    @property
    def data_format(self) -> Format:
        return self._format

    @property
    def extension(self) -> str:
        return self._format.extension

    @property
    def cache(self) -> SharedCache:
        return self._cache

    @property
    def registry(self) -> EntryRegistry:
        return self._registry

    def write(self, entry: Entry, options: WriteOptions | None = None) -> Path:
        """Write an entry and all linked components.

        Args:
            entry: Entry to persist.
            options: Write options; manager defaults when omitted.

        Returns:
            Path of the top-level entry file.

        Raises:
            MosaicError: If encoding, naming, conflicts or file IO fail.
        """
        path, _ = self.write_verbose(entry, options)
        return path

    def write_verbose(
        self,
        entry: Entry,
        options: WriteOptions | None = None,
    ) -> tuple[Path, WriteReport]:
        """Write an entry and report every file created, kept or overwritten."""
        write_options = options if options is not None else self._default_options
        context = ResolutionContext(manager=self, writing=True, options=write_options)
        with bind_context(context):
            path, _, _ = self._write_entry(entry, context, type(entry))
        report = context.write_report()
        _LOGGER.info(
            "entry_written",
            entry_type=type(entry).type_name(),
            path=str(path),
            created=len(report.created_files),
            kept=len(report.kept_files),
            overwritten=len(report.overwritten_files),
        )
        return path, report

    def read(self, entry_type: type[EntryT] | str, name: str) -> EntryT:
        """Read an entry and resolve its links.

        Args:
            entry_type: Entry class, or a registered type name.
            name: Entry name.

        Returns:
            Decoded entry.

        Raises:
            EntryNotFoundError: If the entry file does not exist.
            LinkNotFoundError: If a linked component file does not exist.
            MosaicDecodeError: If a file cannot be decoded.
        """
        entry, _ = self.read_verbose(entry_type, name)
        return entry

    def read_verbose(
        self,
        entry_type: type[EntryT] | str,
        name: str,
    ) -> tuple[EntryT, ReadReport]:
        """Read an entry and report checksum mismatches and cache refreshes."""
        resolved_type = self._resolve_type(entry_type)
        context = ResolutionContext(manager=self, writing=False)
        with bind_context(context):
            entry, checksum = self._load_entry(resolved_type, name, context, linked=False)
        report = context.read_report()
        _LOGGER.info(
            "entry_read",
            entry_type=resolved_type.type_name(),
            name=name,
            checksum=checksum,
            checksum_mismatches=len(report.checksum_mismatches),
            refreshed_cache_entries=len(report.refreshed_cache_keys),
        )
        return entry, report

    def loads(self, model_type: type[ModelT], data: str | bytes) -> ModelT:
        """Validate any model from text in this manager's format.

        Links inside the text resolve against this database. The text is
        not wrapped in a type envelope.

        Args:
            model_type: Pydantic model class to validate.
            data: Encoded text or bytes.

        Returns:
            Validated model instance.
        """
        raw_bytes = data.encode(TEXT_ENCODING) if isinstance(data, str) else data
        type_label = model_type.__name__
        context = ResolutionContext(manager=self, writing=False)
        with bind_context(context):
            payload = self._decode_payload(raw_bytes, type_label, None)
            return _validate_model(model_type, payload, type_label, None, context)

    def exists(self, entry_type: type[Entry] | str, name: str) -> bool:
        """Return whether an entry file exists."""
        return self._path_for(entry_type, name).is_file()

    def full_path(self, entry_type: type[Entry] | str, name: str) -> Path | None:
        """Return the path of an entry file, or None when it does not exist."""
        path = self._path_for(entry_type, name)
        return path if path.is_file() else None

    def checksum(self, entry_type: type[Entry] | str, name: str) -> int | None:
        """Return the checksum of an entry file, or None when it does not exist."""
        return checksum_file(self._path_for(entry_type, name))

    def remove(self, entry_type: type[Entry] | str, name: str) -> None:
        """Delete one entry file. Linked components are left in place.

        Raises:
            EntryNotFoundError: If the entry file does not exist.
            MosaicIOError: If the file cannot be removed.
        """
        type_name = _type_name(entry_type)
        path = self._path_for(type_name, name)
        if not path.is_file():
            raise EntryNotFoundError(
                f"Could not find entry file {path}. Nothing was removed.",
                entry_type=type_name,
                name=name,
            )
        _unlink(path)
        _LOGGER.info("entry_removed", entry_type=type_name, name=name, path=str(path))

    def remove_all(self, name: str) -> list[Path]:
        """Delete the entry called ``name`` from every type folder.

        Returns:
            Paths of the removed files.
        """
        file_name = entry_file_name(name, self.extension)
        removed: list[Path] = []
        for folder in _list_dir(self._root):
            candidate = folder / file_name
            if folder.is_dir() and candidate.is_file():
                _unlink(candidate)
                removed.append(candidate)
        _LOGGER.info("entry_removed", name=name, removed=len(removed))
        return removed

    def remove_empty_subfolders(self) -> list[Path]:
        """Delete every empty directory below the root.

        The manager cannot tell its own folders from foreign ones, so any
        empty directory under the root is removed.

        Returns:
            Paths of the removed directories.
        """
        removed: list[Path] = []
        for folder in _list_dir(self._root):
            if folder.is_dir():
                _remove_empty_tree(folder, removed)
        return removed

    def write_linked(
        self,
        component: Entry,
        component_type: type[Entry],
        context: ResolutionContext,
    ) -> EntryLink:
        """Write a linked component inside a running write and return its link.

        The file goes to the folder of the declared component type, where
        reads through the link look for it. The envelope keeps the runtime
        type so subclasses decode as themselves.
        """
        _, stored_name, data = self._write_entry(component, context, component_type)
        checksum = checksum_bytes(data) if context.options.emit_checksum else None
        return EntryLink(name=stored_name, checksum=checksum)

    def read_linked(
        self,
        component_type: type[EntryT],
        link: EntryLink,
        context: ResolutionContext,
    ) -> EntryT:
        """Resolve an owned link into a fresh component."""
        component, checksum = self._load_entry(component_type, link.name, context, linked=True)
        self._note_checksum_mismatch(component_type, link, checksum, context)
        return component

    def read_shared(
        self,
        component_type: type[EntryT],
        link: EntryLink,
        context: ResolutionContext,
    ) -> EntryT:
        """Resolve a shared link through the shared cache."""

        def load() -> tuple[EntryT, int]:
            component, checksum = self._load_entry(component_type, link.name, context, linked=True)
            self._note_checksum_mismatch(component_type, link, checksum, context)
            return component, checksum

        component, refreshed = self._cache.resolve(component_type, link.name, link.checksum, load)
        if refreshed:
            context.refreshed_cache_keys.append((component_type.type_name(), link.name))
        return component

    def _write_entry(
        self,
        entry: Entry,
        context: ResolutionContext,
        folder_type: type[Entry],
    ) -> tuple[Path, str, bytes]:
        """Encode and persist one entry.

        Args:
            entry: Entry to persist.
            context: Active write context.
            folder_type: Type whose folder receives the file.

        Returns:
            Written path, stored name and encoded bytes.
        """
        options = context.options
        type_name = validate_name(folder_type.type_name(), kind="type")
        stored_name = validate_name(options.stored_name(entry.entry_name()))
        data = self._encode_entry(entry, type_name, stored_name, context)
        folder = type_dir(self._root, type_name)
        try:
            folder.mkdir(parents=True, exist_ok=True)
        except OSError as error:
            raise MosaicIOError(
                f"Could not create type folder {folder}: {error}. Check database permissions."
            ) from error
        path = entry_path(self._root, type_name, stored_name, self.extension)
        if not path.exists():
            context.created_files.append(path)
        elif options.overwrite:
            context.overwritten_files.append(path)
        elif options.adjust_names:
            stored_name, path = self._free_name(type_name, stored_name)
            context.created_files.append(path)
        elif _read_bytes(path) == data:
            context.kept_files.append(path)
            _LOGGER.debug("entry_kept", entry_type=type_name, name=stored_name, path=str(path))
            return path, stored_name, data
        else:
            raise WriteConflictError(
                f"Entry file {path} already exists with different content. "
                "Enable overwrite or adjust_names to write it."
            )
        _write_bytes(path, data)
        _LOGGER.debug("entry_file_written", entry_type=type_name, name=stored_name, path=str(path))
        return path, stored_name, data

    def _encode_entry(
        self,
        entry: Entry,
        type_name: str,
        name: str,
        context: ResolutionContext,
    ) -> bytes:
        try:
            payload = entry.model_dump(mode="json")
        except MosaicError:
            raise
        except Exception as error:
            if context.failure is not None:
                raise context.failure from error
            raise MosaicEncodeError(
                f"Failed to encode {type_name}/{name}: {error}. Check the entry field values.",
                entry_type=type_name,
                name=name,
            ) from error
        envelope = self._registry.wrap(entry, payload)
        try:
            return self._format.encode(envelope, pretty=context.options.pretty)
        except Exception as error:
            raise MosaicEncodeError(
                f"Failed to encode {type_name}/{name} as {self.extension}: {error}.",
                entry_type=type_name,
                name=name,
            ) from error

    def _load_entry(
        self,
        entry_type: type[EntryT],
        name: str,
        context: ResolutionContext,
        linked: bool,
    ) -> tuple[EntryT, int]:
        """Read and decode one entry file.

        Returns:
            Decoded entry and the checksum of its bytes.
        """
        type_name = entry_type.type_name()
        path = entry_path(self._root, type_name, name, self.extension)
        if not path.is_file():
            error_type = LinkNotFoundError if linked else EntryNotFoundError
            raise error_type(
                f"Could not find entry file {path} for {type_name}/{name}. "
                "Write the entry before reading it.",
                entry_type=type_name,
                name=name,
            )
        data = _read_bytes(path)
        payload = self._decode_payload(data, type_name, name)
        try:
            found_type, inner = self._registry.unwrap(payload, expected_type=entry_type)
        except MosaicDecodeError as error:
            error.name = name
            raise
        entry = _validate_model(found_type, inner, type_name, name, context)
        return entry, checksum_bytes(data)

    def _decode_payload(self, data: bytes, type_name: str, name: str | None) -> object:
        try:
            return self._format.decode(data)
        except Exception as error:
            raise MosaicDecodeError(
                f"Failed to parse {type_name}/{name} as {self.extension}: {error}. "
                "Fix the file syntax or rewrite the entry.",
                entry_type=type_name,
                name=name,
            ) from error

    def _note_checksum_mismatch(
        self,
        component_type: type[Entry],
        link: EntryLink,
        file_checksum: int,
        context: ResolutionContext,
    ) -> None:
        if link.checksum is None or link.checksum == file_checksum:
            return
        type_name = component_type.type_name()
        mismatch = ChecksumMismatch(
            entry_type=type_name,
            name=link.name,
            link_checksum=link.checksum,
            file_checksum=file_checksum,
            file_path=entry_path(self._root, type_name, link.name, self.extension),
        )
        context.checksum_mismatches.append(mismatch)
        _LOGGER.warning(
            "link_checksum_mismatch",
            entry_type=type_name,
            name=link.name,
            link_checksum=link.checksum,
            file_checksum=file_checksum,
        )

    def _free_name(self, type_name: str, name: str) -> tuple[str, Path]:
        counter = 0
        while True:
            candidate = adjusted_name(name, counter, ADJUSTED_NAME_SEPARATOR)
            path = entry_path(self._root, type_name, candidate, self.extension)
            if not path.exists():
                return candidate, path
            counter += 1

    def _path_for(self, entry_type: type[Entry] | str, name: str) -> Path:
        return entry_path(self._root, _type_name(entry_type), name, self.extension)

    def _resolve_type(self, entry_type: type[EntryT] | str) -> type[EntryT]:
        if isinstance(entry_type, str):
            return self._registry.lookup(entry_type)  # type: ignore[return-value]
        return entry_type


def _type_name(entry_type: type[Entry] | str) -> str:
    return entry_type if isinstance(entry_type, str) else entry_type.type_name()


def _validate_model(
    model_type: type[ModelT],
    payload: object,
    type_name: str,
    name: str | None,
    context: ResolutionContext,
) -> ModelT:
    try:
        return model_type.model_validate(payload)
    except MosaicError:
        raise
    except ValidationError as error:
        if context.failure is not None:
            raise context.failure from error
        raise MosaicDecodeError(
            f"Stored data for {type_name}/{name} does not match {model_type.__name__}: {error}",
            entry_type=type_name,
            name=name,
        ) from error


def _read_bytes(path: Path) -> bytes:
    try:
        return path.read_bytes()
    except OSError as error:
        raise MosaicIOError(f"Could not read entry file {path}: {error}.") from error


def _write_bytes(path: Path, data: bytes) -> None:
    try:
        path.write_bytes(data)
    except OSError as error:
        path.unlink(missing_ok=True)
        raise MosaicIOError(
            f"Could not write entry file {path}: {error}. Check free space and permissions."
        ) from error


def _list_dir(folder: Path) -> list[Path]:
    try:
        return sorted(folder.iterdir())
    except OSError as error:
        raise MosaicIOError(f"Could not list folder {folder}: {error}.") from error


def _unlink(path: Path) -> None:
    try:
        path.unlink()
    except OSError as error:
        raise MosaicIOError(f"Could not remove entry file {path}: {error}.") from error


def _remove_empty_tree(folder: Path, removed: list[Path]) -> bool:
    """Remove empty directories below and including ``folder``.

    Returns:
        Whether ``folder`` itself was removed.
    """
    is_empty = True
    for child in _list_dir(folder):
        if child.is_dir() and _remove_empty_tree(child, removed):
            continue
        is_empty = False
    if is_empty:
        try:
            folder.rmdir()
        except OSError as error:
            raise MosaicIOError(f"Could not remove empty folder {folder}: {error}.") from error
        removed.append(folder)
    return is_empty
