"""
Pydantic model for install manifests.

A manifest maps a category (the destination subdirectory, e.g. ``bin``) to the
glob patterns selecting files from an extracted archive::

    {
        "bin": ["cmd1", "rel/path/cmd2", "bin/*"],
        "lib": ["lib1", "lib/*"],
        "man": ["man/man1/*"]
    }
"""

import json
from collections.abc import Iterator, Mapping
from pathlib import Path

from pydantic import RootModel, ValidationError, field_validator

from bootkit.exceptions import ManifestError


class Manifest(RootModel[dict[str, list[str]]]):
    """An ordered, validated category -> patterns mapping."""

    @field_validator("root")
    @classmethod
    def validate_entries(cls, v: dict[str, list[str]]) -> dict[str, list[str]]:
        for category, patterns in v.items():
            if not category or "/" in category or category in (".", ".."):
                raise ValueError(f"Invalid manifest category: '{category}'")
            for pattern in patterns:
                if not pattern or not pattern.strip():
                    raise ValueError(f"Empty pattern in category '{category}'")
                if pattern.startswith("/"):
                    raise ValueError(
                        f"Pattern '{pattern}' in '{category}' must be relative."
                    )
                if ".." in Path(pattern).parts:
                    raise ValueError(
                        f"Pattern '{pattern}' in '{category}' cannot contain '..'."
                    )
        return v

    def items(self) -> Iterator[tuple[str, list[str]]]:
        """Yields (category, patterns) pairs in declaration order."""
        yield from self.root.items()

    def __len__(self) -> int:
        return len(self.root)

    @classmethod
    def from_mapping(cls, data: "Mapping[str, list[str]] | Manifest") -> "Manifest":
        """Builds a manifest from a plain mapping, wrapping validation errors."""
        if isinstance(data, Manifest):
            return data
        try:
            return cls.model_validate(dict(data))
        except ValidationError as e:
            raise ManifestError(f"Invalid manifest:\n{e}") from e

    @classmethod
    def from_file(cls, path: Path) -> "Manifest":
        """Loads a manifest from a JSON file."""
        try:
            with open(path, encoding="utf-8") as f:
                data = json.load(f)
        except OSError as e:
            raise ManifestError(f"Could not read manifest '{path}': {e}") from e
        except json.JSONDecodeError as e:
            raise ManifestError(f"Manifest '{path}' is not valid JSON: {e}") from e
        if not isinstance(data, dict):
            raise ManifestError(f"Manifest '{path}' must be a JSON object.")
        return cls.from_mapping(data)

    def to_json(self) -> str:
        return json.dumps(self.root)
