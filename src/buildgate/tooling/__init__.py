"""External tool acquisition and the ktlint actions."""

from buildgate.tooling.acquisition import (
    ToolDescriptor,
    build_http_client,
    download,
    ensure_directory,
    provision_tool,
    verify,
)
from buildgate.tooling.ktlint import KtlintTasks, create_ktlint_tasks

__all__ = [
    "KtlintTasks",
    "ToolDescriptor",
    "build_http_client",
    "create_ktlint_tasks",
    "download",
    "ensure_directory",
    "provision_tool",
    "verify",
]
