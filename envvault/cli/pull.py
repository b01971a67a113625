"""Pull: regenerate managed blocks from encrypted secrets.

For each service the shared secrets are decrypted, local overrides are laid
on top, and the result replaces the (environment, service) managed block in
the service's env file. Only key names are reported back.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

from envvault.config.project import ProjectConfig, load_key_schema, validate_entries
from envvault.config.settings import Settings
from envvault.dotenv.diff import diff
from envvault.dotenv.exceptions import InvalidBlockNameError
from envvault.dotenv.managed_block import extract, insert
from envvault.dotenv.markers import is_valid_name
from envvault.dotenv.models import BlockPosition, DiffResult
from envvault.integrations.protocols import SecretsBackend
from envvault.overrides import (
    OverrideTarget,
    get_overridden_keys,
    merge_with_overrides,
    read_overrides,
)
from envvault.utils.errors import SopsError
from envvault.utils.files import atomic_write_text, read_text_if_exists
from envvault.utils.logging import log_message


@dataclass
class ServicePullResult:
    """Outcome of pulling one service.

    Attributes:
        service: Service name
        output_path: Env file holding the managed block
        diff: Key-level change between the old and new block
        overridden_keys: Shared keys replaced by a local override
        missing_keys: Required keys absent after the merge
        written: Whether the file was changed on disk
        error: Decryption failure message, when the service was skipped
    """

    service: str
    output_path: Path
    diff: DiffResult = field(default_factory=DiffResult)
    overridden_keys: list[str] = field(default_factory=list)
    missing_keys: list[str] = field(default_factory=list)
    written: bool = False
    error: str | None = None


def pull_service(
    project: ProjectConfig,
    settings: Settings,
    backend: SecretsBackend,
    environment: str,
    service: str,
    repo_name: str,
    position: BlockPosition = BlockPosition.BOTTOM,
    dry_run: bool = False,
) -> ServicePullResult:
    """Regenerate one service's managed block.

    Raises:
        InvalidBlockNameError: If the environment name cannot be written
            into a managed-block delimiter.
        ConfigError: If the service is not declared in the project config.
        SopsError: If the secrets file cannot be decrypted.
        DuplicateKeyError: If the override file declares a key twice.
    """
    if not is_valid_name(environment):
        raise InvalidBlockNameError("environment", environment)

    output_path = project.env_output_path(service)
    shared = backend.decrypt_entries(project.secrets_path(environment, service))

    target = OverrideTarget(
        repo=repo_name,
        env=environment,
        service=service,
        mode="local" if settings.overrides_mode == "local" else "home",
        base_dir=project.root,
        overrides_dir=settings.overrides_dir,
    )
    local = read_overrides(target)
    entries = merge_with_overrides(shared, local)

    missing: list[str] = []
    schemas = load_key_schema(project.root)
    if schemas is not None:
        missing = list(validate_entries(schemas, service, entries).missing)

    current = read_text_if_exists(output_path) or ""
    old_block = extract(current, environment, service)
    result = diff(old_block.entries if old_block else (), entries)

    new_text = insert(current, environment, service, entries, position)
    written = False
    if not dry_run and new_text != current:
        atomic_write_text(output_path, new_text)
        written = True

    log_message(
        f"Pulled env={environment} service={service}: {len(entries)} keys, "
        f"{len(local)} overrides, written={written}"
    )
    return ServicePullResult(
        service=service,
        output_path=output_path,
        diff=result,
        overridden_keys=get_overridden_keys(shared, local),
        missing_keys=missing,
        written=written,
    )


def pull(
    project: ProjectConfig,
    settings: Settings,
    backend: SecretsBackend,
    environment: str,
    services: list[str] | None = None,
    repo_name: str | None = None,
    position: BlockPosition = BlockPosition.BOTTOM,
    dry_run: bool = False,
) -> list[ServicePullResult]:
    """Pull every requested service (default: all declared services).

    A service whose secrets cannot be decrypted is reported through
    ``ServicePullResult.error`` and the remaining services are still pulled.
    """
    names = services or sorted(project.services)
    repo = repo_name or project.root.name
    results: list[ServicePullResult] = []
    for name in names:
        try:
            result = pull_service(
                project,
                settings,
                backend,
                environment,
                name,
                repo,
                position=position,
                dry_run=dry_run,
            )
        except SopsError as e:
            log_message(f"Skipping service {name}: {e}")
            result = ServicePullResult(
                service=name,
                output_path=project.env_output_path(name),
                error=str(e),
            )
        results.append(result)
    return results


__all__ = [
    "ServicePullResult",
    "pull_service",
    "pull",
]
