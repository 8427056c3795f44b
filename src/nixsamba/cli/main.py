#!/usr/bin/env python3
"""
NIXSAMBA CLI - Share Manager Front End
--------------------------------------
Command line interface over ShareConfigEngine. Lists the shares of a
NixOS configuration and adds, updates or removes them with an optional
diff preview and a confirmation gate before anything is written.

Author: NixSamba Team
"""

import sys
import argparse
from typing import List, Optional

from rich.console import Console
from rich.panel import Panel

from nixsamba.core.config import EngineSettings, DEFAULT_CONFIG_PATH
from nixsamba.core.engine import ShareConfigEngine
from nixsamba.core.errors import ShareEditError
from nixsamba.core.models import ShareSpec, RemoteShareSpec, ShareOperation
from nixsamba.cli.formatter import ShareFormatter

# Global console for consistent styling across the application
console = Console()

VERSION = "nixsamba v1.0.0"


class NixSambaCLI:
    """
    CLI wrapper that translates user commands into engine operations.
    Provides visual feedback, safety confirmations, and diffs.
    """

    def __init__(self):
        self.parser = argparse.ArgumentParser(
            prog="nixsamba",
            description="NixSamba - manage Samba shares in a NixOS configuration",
            formatter_class=argparse.RawDescriptionHelpFormatter,
        )
        self.formatter = ShareFormatter(console)
        self._setup_args()

    def _add_write_flags(self, parser: argparse.ArgumentParser):
        parser.add_argument("--dry-run", action="store_true", help="Preview results without writing")
        parser.add_argument("--diff", action="store_true", help="Display the proposed change as a diff")
        parser.add_argument("-y", "--yes", action="store_true", help="Write without asking for confirmation")

    def _add_share_flags(self, parser: argparse.ArgumentParser):
        parser.add_argument("name", help="Share name (key inside services.samba.settings)")
        parser.add_argument("path", help="Directory to share")
        parser.add_argument("--no-browseable", action="store_true", help="Hide the share from browse lists")
        parser.add_argument("--read-only", action="store_true", help="Export the share read-only")
        parser.add_argument("--guest-ok", action="store_true", help="Allow guest access")
        parser.add_argument("--force-user", default="", help="Force file operations as this user")
        parser.add_argument("--force-group", default="", help="Force file operations as this group")

    def _add_remote_flags(self, parser: argparse.ArgumentParser):
        parser.add_argument("mount_point", help="Local mount point (key under fileSystems)")
        parser.add_argument("device", help="Remote share, e.g. //server/share")
        parser.add_argument("--fs-type", default="cifs", help="Filesystem type (default: cifs)")
        parser.add_argument("--credentials", default="", help="Path of a mount.cifs credentials file")
        parser.add_argument("--uid", default="", help="Owner of the mounted files")
        parser.add_argument("--gid", default="", help="Group of the mounted files")

    def _setup_remote_args(self, subparsers):
        self.remote_parser = subparsers.add_parser("remote", help="🌐 Manage mounted remote SMB shares")
        actions = self.remote_parser.add_subparsers(dest="remote_command", metavar="Action")

        list_parser = actions.add_parser("list", help="📋 List mounted remote shares")
        list_parser.add_argument("--format", choices=["table", "yaml"], default="table",
                                 help="Output format (default: table)")

        add_parser = actions.add_parser("add", help="➕ Mount a new remote share")
        self._add_remote_flags(add_parser)
        self._add_write_flags(add_parser)

        update_parser = actions.add_parser("update", help="✏️  Replace a remote share mount")
        self._add_remote_flags(update_parser)
        update_parser.add_argument("--rename", default=None, metavar="NEW_MOUNT_POINT",
                                   help="Move the mount point, keeping the entry's position")
        self._add_write_flags(update_parser)

        remove_parser = actions.add_parser("remove", help="🗑  Remove a remote share mount")
        remove_parser.add_argument("mount_point", help="Mount point to remove")
        self._add_write_flags(remove_parser)

    def _setup_args(self):
        """Configures the command-line flags and subcommands."""
        self.parser.add_argument("-v", "--version", action="version", version=VERSION)
        self.parser.add_argument(
            "--config", default=None,
            help=f"Configuration file to edit (default: $NIXSAMBA_CONFIG or {DEFAULT_CONFIG_PATH})"
        )
        subparsers = self.parser.add_subparsers(dest="command", metavar="Command")

        list_parser = subparsers.add_parser("list", help="📋 List configured shares")
        list_parser.add_argument("--format", choices=["table", "yaml"], default="table",
                                 help="Output format (default: table)")

        add_parser = subparsers.add_parser("add", help="➕ Add a new share")
        self._add_share_flags(add_parser)
        self._add_write_flags(add_parser)

        update_parser = subparsers.add_parser("update", help="✏️  Replace an existing share")
        self._add_share_flags(update_parser)
        update_parser.add_argument("--rename", default=None, metavar="NEW_NAME",
                                   help="Give the share a new name, keeping its position")
        self._add_write_flags(update_parser)

        remove_parser = subparsers.add_parser("remove", help="🗑  Remove a share")
        remove_parser.add_argument("name", help="Share name to remove")
        self._add_write_flags(remove_parser)

        self._setup_remote_args(subparsers)

    def print_header(self, subtitle: str):
        console.print(Panel.fit(
            f"[bold cyan]{VERSION}[/bold cyan]",
            title=f"[bold white]{subtitle}[/bold white]",
            border_style="cyan"
        ))

    def _build_engine(self, args: argparse.Namespace) -> ShareConfigEngine:
        return ShareConfigEngine(EngineSettings.from_env(config_path=args.config))

    def _spec_from_args(self, args: argparse.Namespace, name: Optional[str] = None) -> ShareSpec:
        return ShareSpec(
            name=name or args.name,
            path=args.path,
            browseable=not args.no_browseable,
            read_only=args.read_only,
            guest_ok=args.guest_ok,
            force_user=args.force_user,
            force_group=args.force_group,
        )

    def _remote_from_args(self, args: argparse.Namespace, mount_point: Optional[str] = None) -> RemoteShareSpec:
        return RemoteShareSpec(
            mount_point=mount_point or args.mount_point,
            device=args.device,
            fs_type=args.fs_type,
            credentials=args.credentials,
            uid=args.uid,
            gid=args.gid,
        )

    def _build_remote_operation(self, args: argparse.Namespace) -> ShareOperation:
        if args.remote_command == "add":
            return ShareOperation.add(self._remote_from_args(args))
        if args.remote_command == "update":
            if args.rename:
                return ShareOperation.update(self._remote_from_args(args, args.rename),
                                             old_name=args.mount_point)
            return ShareOperation.update(self._remote_from_args(args))
        return ShareOperation.remove(args.mount_point, remote=True)

    def _build_operation(self, args: argparse.Namespace) -> ShareOperation:
        if args.command == "remote":
            return self._build_remote_operation(args)
        if args.command == "add":
            return ShareOperation.add(self._spec_from_args(args))
        if args.command == "update":
            if args.rename:
                return ShareOperation.update(self._spec_from_args(args, args.rename), old_name=args.name)
            return ShareOperation.update(self._spec_from_args(args))
        return ShareOperation.remove(args.name)

    def _confirm_action(self, args: argparse.Namespace, engine: ShareConfigEngine) -> bool:
        """Safety gate: ensures the user wants the file rewritten."""
        if args.dry_run or args.yes:
            return True
        choice = console.input(
            f"\n[bold yellow]Write changes to {engine.config_path}? (y/N): [/bold yellow]"
        ).lower()
        return choice == "y"

    def _run_list(self, args: argparse.Namespace) -> int:
        engine = self._build_engine(args)
        try:
            shares = engine.list_shares()
        except ShareEditError as e:
            console.print(f"[bold red]Error:[/bold red] {e}")
            return 1
        if args.format == "yaml":
            self.formatter.print_yaml(shares)
        else:
            self.formatter.print_share_table(shares, str(engine.config_path))
        return 0

    def _run_remote_list(self, args: argparse.Namespace) -> int:
        engine = self._build_engine(args)
        try:
            remotes = engine.list_remote_shares()
        except ShareEditError as e:
            console.print(f"[bold red]Error:[/bold red] {e}")
            return 1
        if args.format == "yaml":
            self.formatter.print_yaml(remotes, key="mount_point")
        else:
            self.formatter.print_remote_table(remotes, str(engine.config_path))
        return 0

    def _run_edit(self, args: argparse.Namespace) -> int:
        engine = self._build_engine(args)
        try:
            operation = self._build_operation(args)
        except ShareEditError as e:
            console.print(f"[bold red]Invalid share:[/bold red] {e}")
            return 1

        # Always preview first; the write pass re-reads the file
        preview = engine.apply(operation, dry_run=True)
        if not preview["success"]:
            self.formatter.print_report(preview)
            return 1

        if args.diff or args.dry_run:
            self.formatter.display_diff(preview["old_content"], preview["new_content"],
                                        str(engine.config_path))
        if args.dry_run:
            self.formatter.print_report(preview)
            return 0

        if not self._confirm_action(args, engine):
            console.print("[bold red]Operation cancelled by user.[/bold red]")
            return 1

        report = engine.apply(operation, dry_run=False)
        self.formatter.print_report(report)
        return 0 if report["success"] else 1

    def run(self, argv: Optional[List[str]] = None) -> int:
        """Primary routing entry point."""
        argv = sys.argv[1:] if argv is None else argv
        if not argv:
            self.print_header("Samba Share Manager")
            self.parser.print_help()
            return 0

        args = self.parser.parse_args(argv)
        if args.command == "list":
            return self._run_list(args)
        if args.command in ("add", "update", "remove"):
            return self._run_edit(args)
        if args.command == "remote":
            if args.remote_command == "list":
                return self._run_remote_list(args)
            if args.remote_command in ("add", "update", "remove"):
                return self._run_edit(args)
            self.remote_parser.print_help()
            return 0
        self.parser.print_help()
        return 0


def main():
    """Application entry point with interrupt handling."""
    try:
        sys.exit(NixSambaCLI().run())
    except KeyboardInterrupt:
        console.print("\n[bold red]Terminated by user.[/bold red]")
        sys.exit(1)


if __name__ == "__main__":
    main()
