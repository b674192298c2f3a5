"""Filters deciding which entities, manifests and files a crawl follows."""

from .domain import Entity, Manifest
from .exceptions import ParseFailure, PolicyExclusion


def version_number(version_tag: str) -> int:
    """
    Extract the numeric part of a manifest version such as ``"v24"``.

    Raises:
        ParseFailure: If the part after the one-character prefix is not an
                      integer.
    """
    try:
        return int(version_tag[1:])
    except ValueError as e:
        raise ParseFailure(f"Unparseable manifest version {version_tag!r}") from e


class CrawlPolicy:
    """Entity-kind, manifest-version and platform filters."""

    def __init__(
        self,
        target_kind: str = "wearable",
        version_cutoff: int = 25,
        platform_suffix: str = "windows",
    ):
        self.target_kind = target_kind
        self.version_cutoff = version_cutoff
        self.platform_suffix = platform_suffix

    def check_entity(self, entity: Entity):
        if entity.kind != self.target_kind:
            raise PolicyExclusion(f"{entity.id} is a {entity.kind}, not a {self.target_kind}")

    def check_manifest(self, manifest: Manifest):
        # Newer manifests put a content hash in the asset URL.
        if version_number(manifest.version_tag) >= self.version_cutoff:
            raise PolicyExclusion(
                f"Manifest version {manifest.version_tag} is not below "
                f"v{self.version_cutoff}"
            )

    def accepts_file(self, filename: str) -> bool:
        return filename.endswith(self.platform_suffix)
