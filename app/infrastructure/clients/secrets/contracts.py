"""Secret store client contract and secret reference parsing."""

from dataclasses import dataclass, field
from typing import Optional, Protocol
from urllib.parse import urlparse


@dataclass(frozen=True)
class SecretReference:
    """A pointer to a secret held by a credential record.

    Attributes:
        name: Secret name
        version: Specific version, or None for the latest
        vault_url: Vault the reference points into, if it was a full URI
    """

    name: str
    version: Optional[str] = None
    vault_url: Optional[str] = None


@dataclass
class SecretBundle:
    """A secret's value and metadata.

    ``value`` is None when the vault refuses to return a disabled secret.
    """

    name: str
    value: Optional[str]
    tags: dict[str, str] = field(default_factory=dict)
    enabled: bool = True
    version: Optional[str] = None


def parse_secret_reference(reference: str) -> SecretReference:
    """Parse a secret identifier or bare secret name.

    Accepts ``https://<vault>/secrets/<name>[/<version>]`` or ``<name>``.

    Raises:
        ValueError: If the reference is empty or a malformed URI

    Example:
        >>> ref = parse_secret_reference("https://kv.vault.azure.net/secrets/db-pw/abc")
        >>> ref.name, ref.version
        ('db-pw', 'abc')
    """
    if not reference or not reference.strip():
        raise ValueError("secret reference is empty")

    reference = reference.strip()
    if "://" not in reference:
        if "/" in reference:
            raise ValueError(f"invalid secret name: {reference!r}")
        return SecretReference(name=reference)

    parsed = urlparse(reference)
    parts = [part for part in parsed.path.split("/") if part]
    if len(parts) not in (2, 3) or parts[0] != "secrets":
        raise ValueError(f"invalid secret identifier: {reference!r}")
    return SecretReference(
        name=parts[1],
        version=parts[2] if len(parts) == 3 else None,
        vault_url=f"{parsed.scheme}://{parsed.netloc}",
    )


def _vault_safe(value: str) -> str:
    return value.replace("_", "-").replace(".", "-").lower()


def tenant_secret_name(name: str, prefix: Optional[str]) -> str:
    """Vault name of a bare secret name stored for a tenant.

    The name is joined to the tenant's secret prefix with a hyphen. Dots and
    underscores become hyphens and the result is lowercased. A name that
    already starts with the prefix is not prefixed again. Without a prefix the
    name is returned as is.

    Example:
        >>> tenant_secret_name("DB_Password", "contoso.com")
        'contoso-com-db-password'
    """
    if not prefix or not prefix.strip():
        return name
    safe_prefix = _vault_safe(prefix.strip())
    safe_name = _vault_safe(name)
    if safe_name.startswith(f"{safe_prefix}-"):
        return safe_name
    return f"{safe_prefix}-{safe_name}"


def resolve_secret_reference(
    reference: str, prefix: Optional[str] = None
) -> SecretReference:
    """Parse a reference and map a bare name to its tenant-scoped vault name.

    Full secret URIs already name the vault entry and are used unchanged.

    Raises:
        ValueError: If the reference is empty or malformed
    """
    ref = parse_secret_reference(reference)
    if ref.vault_url is not None:
        return ref
    return SecretReference(name=tenant_secret_name(ref.name, prefix))


class SecretStoreClient(Protocol):
    """Capabilities the reconciler needs from the secret vault.

    Reads return None for a missing secret rather than raising.
    """

    async def get_secret(
        self, name: str, version: Optional[str] = None
    ) -> Optional[str]: ...

    async def get_secret_with_tags(
        self, name: str, version: Optional[str] = None
    ) -> Optional[SecretBundle]: ...

    async def set_secret(
        self, name: str, value: str, tags: Optional[dict[str, str]] = None
    ) -> str: ...

    async def update_secret_tags(
        self,
        name: str,
        tags: dict[str, str],
        version: Optional[str] = None,
        enabled: Optional[bool] = None,
    ) -> None: ...

    async def delete_secret(self, name: str) -> bool: ...

    async def purge_deleted_secret(self, name: str) -> None: ...
