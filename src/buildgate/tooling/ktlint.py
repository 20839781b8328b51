"""ktlint provisioning and the check/format actions defined at the build root."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Final

from buildgate.tasks.process import CommandRunner, run_external_process
from buildgate.tooling.acquisition import ClientFactory, ToolDescriptor, provision_tool

if TYPE_CHECKING:
    from buildgate.config.settings import BuildSettings
    from buildgate.tasks.registry import Task, TaskRegistry

TOOL_NAME: Final[str] = "ktlint"
CHECK_TASK: Final[str] = "KtlintCheck"
FORMAT_TASK: Final[str] = "KtlintFormat"
VERIFY_TASK: Final[str] = "KtlintDownloadVerify"


@dataclass(frozen=True, slots=True)
class KtlintTasks:
    verify: Task
    check: Task
    format: Task


def ktlint_descriptor(settings: BuildSettings) -> ToolDescriptor:
    ktlint = settings.ktlint
    return ToolDescriptor(
        name=TOOL_NAME,
        version=ktlint.version,
        sha256=ktlint.sha256,
        source_url=ktlint.url,
        destination=ktlint.jar,
    )


def check_command(settings: BuildSettings) -> tuple[str, ...]:
    return ("java", "-jar", str(settings.ktlint.jar), *settings.ktlint.patterns)


def format_command(settings: BuildSettings) -> tuple[str, ...]:
    return ("java", "-jar", str(settings.ktlint.jar), "-F", *settings.ktlint.patterns)


def create_ktlint_tasks(
    registry: TaskRegistry,
    settings: BuildSettings,
    *,
    runner: CommandRunner | None = None,
    client_factory: ClientFactory | None = None,
) -> KtlintTasks:
    """Define the provisioning chain plus ``KtlintCheck`` and ``KtlintFormat``.

    Both actions run from the build root so the relative patterns match module
    sources, and both depend on the verified artifact.
    """

    verified = provision_tool(
        registry,
        ktlint_descriptor(settings),
        build_dir=settings.build_dir,
        client_factory=client_factory,
    )
    check = run_external_process(
        registry,
        CHECK_TASK,
        check_command(settings),
        cwd=settings.root,
        depends_on=(verified,),
        runner=runner,
        description="check Kotlin sources with ktlint",
    )
    reformat = run_external_process(
        registry,
        FORMAT_TASK,
        format_command(settings),
        cwd=settings.root,
        depends_on=(verified,),
        runner=runner,
        description="reformat Kotlin sources with ktlint",
    )
    return KtlintTasks(verify=verified, check=check, format=reformat)


__all__ = [
    "CHECK_TASK",
    "FORMAT_TASK",
    "KtlintTasks",
    "TOOL_NAME",
    "VERIFY_TASK",
    "check_command",
    "create_ktlint_tasks",
    "format_command",
    "ktlint_descriptor",
]
