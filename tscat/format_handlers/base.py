#!/usr/bin/env python3
"""
Base classes for catalog codecs.

FormatHandler is the abstract base class every file format implements:
decode() turns file content into a Catalog, encode() turns a Catalog back
into file content. FormatRegistry maps format names and file extensions to
handler classes.
"""

from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Optional, Union

from ..catalog import Catalog
from ..errors import ParseError


class FormatHandler(ABC):
    """
    Abstract base class for format-specific catalog codecs.

    A handler owns both directions of one on-disk representation. decode()
    either returns a complete Catalog or raises ParseError; it never hands
    back a partially filled catalog.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Short format name used on the command line."""
        pass

    @property
    @abstractmethod
    def file_extensions(self) -> list[str]:
        """List of file extensions this handler supports (without dot)."""
        pass

    @property
    def description(self) -> str:
        """Human-readable format description."""
        return self.name

    @abstractmethod
    def decode(self, content: str) -> Catalog:
        """
        Parse file content into a catalog.

        Args:
            content: Raw file content as string

        Returns:
            Decoded Catalog

        Raises:
            ParseError: If the content is malformed (with line/offset when known)
        """
        pass

    @abstractmethod
    def encode(self, catalog: Catalog) -> str:
        """
        Serialize a catalog.

        Args:
            catalog: Catalog to write

        Returns:
            Complete file content as string
        """
        pass

    def load(self, path: Union[str, Path]) -> Catalog:
        """
        Read and decode a catalog file.

        Raises:
            ParseError: If the file is not UTF-8 or its content is malformed
        """
        data = Path(path).read_bytes()
        try:
            content = data.decode("utf-8")
        except UnicodeDecodeError as e:
            line_start = data.rfind(b"\n", 0, e.start) + 1
            raise ParseError(
                f"Invalid UTF-8 byte 0x{data[e.start]:02x} at offset {e.start}",
                line=data.count(b"\n", 0, e.start) + 1,
                offset=e.start - line_start + 1,
            ) from e
        return self.decode(content)

    def save(self, path: Union[str, Path], catalog: Catalog) -> None:
        """Encode and write a catalog file."""
        Path(path).write_text(self.encode(catalog), encoding="utf-8")

    def validate_content(self, content: str) -> list[str]:
        """
        Check that content decodes.

        Returns:
            List of error messages (empty if valid)
        """
        try:
            self.decode(content)
        except ParseError as e:
            return [str(e)]
        return []


class FormatRegistry:
    """Registry of available catalog codecs."""

    _handlers: dict[str, type[FormatHandler]] = {}
    _extension_map: dict[str, str] = {}  # extension -> handler name

    @classmethod
    def register(cls, handler_class: type[FormatHandler]) -> None:
        """Register a format handler class."""
        handler = handler_class()
        cls._handlers[handler.name.lower()] = handler_class
        for ext in handler.file_extensions:
            cls._extension_map[ext.lower()] = handler.name.lower()

    @classmethod
    def get_handler(cls, name: str) -> FormatHandler:
        """Get handler instance by name."""
        name_lower = name.lower()
        if name_lower not in cls._handlers:
            available = ', '.join(cls._handlers.keys())
            raise ValueError(f"Unknown format: {name}. Available: {available}")
        return cls._handlers[name_lower]()

    @classmethod
    def get_handler_for_extension(cls, extension: str) -> FormatHandler:
        """Get handler instance by file extension."""
        ext = extension.lower().lstrip('.')
        if ext not in cls._extension_map:
            available = ', '.join(cls._extension_map.keys())
            raise ValueError(f"Unknown extension: .{ext}. Supported: {available}")
        return cls.get_handler(cls._extension_map[ext])

    @classmethod
    def detect_format(cls, filepath: str, content: Optional[str] = None) -> FormatHandler:
        """
        Auto-detect format from file path and optionally content.

        Args:
            filepath: Path to the file
            content: Optional file content for content-based detection

        Returns:
            Appropriate FormatHandler instance
        """
        ext = Path(filepath).suffix.lower().lstrip('.')

        # .xml exports from Linguist are still TS documents
        if ext == 'xml' and content and '<TS' in content:
            return cls.get_handler('ts')

        return cls.get_handler_for_extension(ext)

    @classmethod
    def list_formats(cls) -> list[dict[str, Any]]:
        """List all registered formats with their extensions."""
        result = []
        for name, handler_class in cls._handlers.items():
            handler = handler_class()
            result.append({
                'name': handler.name,
                'extensions': handler.file_extensions,
                'description': handler.description,
            })
        return result
