# src/nixsamba/cli/formatter.py
import io
import difflib
from typing import List, Dict, Any, Optional

from rich.console import Console
from rich.panel import Panel
from rich.syntax import Syntax
from rich.table import Table
from ruamel.yaml import YAML

from nixsamba.core.models import ShareSpec, RemoteShareSpec
from nixsamba.surgery.synthesizer import yes_no

# Initialize the Rich console for high-quality terminal output
console = Console()


class ShareFormatter:
    """
    ShareFormatter: The visual heart of the CLI.
    Responsible for rendering diffs, share listings and operation reports.
    """

    def __init__(self, out: Optional[Console] = None):
        self.console = out or console

    def display_diff(self, original_text: str, new_text: str, file_name: str):
        """
        Renders a colorized unified diff between the configuration on disk
        and the rewritten version.
        """
        diff = difflib.unified_diff(
            original_text.splitlines(),
            new_text.splitlines(),
            fromfile=f"Original: {file_name}",
            tofile="Proposed",
            lineterm=""
        )

        diff_list = list(diff)
        if not diff_list:
            self.console.print(f"[dim]ℹ No changes for {file_name}.[/dim]")
            return

        syntax = Syntax("\n".join(diff_list), "diff", theme="monokai", line_numbers=True)
        self.console.print(Panel(syntax, title=f"Proposed Change: {file_name}", border_style="green"))

    def print_share_table(self, shares: List[ShareSpec], source: str):
        """Tabular listing of the shares found in the settings section."""
        if not shares:
            self.console.print(f"[bold yellow]⚠️  No shares defined in {source}.[/bold yellow]")
            return

        table = Table(title=f"Samba Shares ({source})", show_lines=True, header_style="bold magenta")
        table.add_column("Name", style="cyan", no_wrap=True)
        table.add_column("Path", style="white")
        table.add_column("Browseable", justify="center")
        table.add_column("Read Only", justify="center")
        table.add_column("Guest OK", justify="center")
        table.add_column("Force User")
        table.add_column("Force Group")

        for share in shares:
            table.add_row(
                share.name, share.path,
                yes_no(share.browseable), yes_no(share.read_only), yes_no(share.guest_ok),
                share.force_user or "-", share.force_group or "-"
            )
        self.console.print(table)

    def print_remote_table(self, remotes: List[RemoteShareSpec], source: str):
        """Tabular listing of the SMB mounts declared under fileSystems."""
        if not remotes:
            self.console.print(f"[bold yellow]⚠️  No remote shares mounted in {source}.[/bold yellow]")
            return

        table = Table(title=f"Remote Shares ({source})", show_lines=True, header_style="bold magenta")
        table.add_column("Mount Point", style="cyan", no_wrap=True)
        table.add_column("Device", style="white")
        table.add_column("Type", justify="center")
        table.add_column("Credentials")
        table.add_column("UID", justify="center")
        table.add_column("GID", justify="center")

        for remote in remotes:
            table.add_row(
                remote.mount_point, remote.device, remote.fs_type,
                remote.credentials or "-", remote.uid or "-", remote.gid or "-"
            )
        self.console.print(table)

    def shares_to_yaml(self, shares: List[Any], key: str = "name") -> str:
        """Serializes shares as a YAML mapping keyed by the `key` field."""
        yaml = YAML()
        yaml.default_flow_style = False
        data = {}
        for share in shares:
            entry = share.to_dict()
            data[entry.pop(key)] = entry
        stream = io.StringIO()
        yaml.dump(data, stream)
        return stream.getvalue()

    def print_yaml(self, shares: List[Any], key: str = "name"):
        if not shares:
            self.console.print("{}")
            return
        self.console.print(Syntax(self.shares_to_yaml(shares, key), "yaml", theme="monokai"))

    def print_report(self, report: Dict[str, Any]):
        """One-line outcome of an add / update / remove."""
        status = report.get("status", "FAILED")
        success = report.get("success", False)
        color = "green" if success else "red"
        icon = "✅" if success else "❌"
        self.console.print(
            f"{icon} [bold]{report.get('operation', '?')}[/bold] "
            f"[cyan]{report.get('share', '')}[/cyan]: [{color}]{status}[/{color}]"
        )
        if report.get("error"):
            self.console.print(f"   [red]{report['error']}[/red]")
        if report.get("backup_created"):
            self.console.print(f"   [dim]Backup: {report['backup_created']}[/dim]")
        if report.get("backup_warning"):
            self.console.print(f"   [yellow]{report['backup_warning']}[/yellow]")
