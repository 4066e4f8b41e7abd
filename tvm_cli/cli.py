"""Command line surface for tvm plugin and tool management."""

from __future__ import annotations

import argparse
import logging
import os
import shlex
from typing import Mapping, Sequence

from tvm_core.app import TvmApp, dirs_from_env
from tvm_core.backends import Backend, BackendType
from tvm_core.errors import PluginNotInstalled, RefusedUntrustedPlugin, TvmError
from tvm_core.install_context import InstallContext, ToolVersion, parse_tool_spec

CLI_VERSION = "0.1.0"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="tvm",
        description="tvm - install tool plugins and the tool versions they provide.",
    )
    parser.add_argument("--version", action="version", version=f"tvm v{CLI_VERSION}")
    verbosity = parser.add_mutually_exclusive_group()
    verbosity.add_argument("-v", "--verbose", action="store_true", help="log debug output")
    verbosity.add_argument("-q", "--quiet", action="store_true", help="only log warnings and errors")
    parser.add_argument("-y", "--yes", action="store_true", default=None, help="answer yes to every prompt")
    parser.add_argument(
        "--paranoid",
        action="store_true",
        default=None,
        help="refuse community plugins instead of asking",
    )
    subparsers = parser.add_subparsers(dest="command")
    subparsers.required = False

    plugins = subparsers.add_parser("plugins", help="manage tool plugins")
    plugins_sub = plugins.add_subparsers(dest="plugins_cmd", required=True)

    install = plugins_sub.add_parser("install", help="install a plugin")
    install.add_argument("name", help="plugin name, shorthand or owner/repo")
    install.add_argument("url", nargs="?", help="explicit git remote (optionally url#ref)")
    install.add_argument("-f", "--force", action="store_true", help="reinstall when already installed")
    install.set_defaults(func=_handle_plugins_install)

    uninstall = plugins_sub.add_parser("uninstall", help="remove installed plugins")
    uninstall.add_argument("names", nargs="+", help="plugin names")
    uninstall.set_defaults(func=_handle_plugins_uninstall)

    update = plugins_sub.add_parser("update", help="update plugins from their remotes")
    update.add_argument("names", nargs="*", help="plugin names, optionally name#ref (default: all)")
    update.set_defaults(func=_handle_plugins_update)

    ls = plugins_sub.add_parser("ls", help="list installed plugins")
    ls.add_argument("-u", "--urls", action="store_true", help="show the git remote of each plugin")
    ls.add_argument("--refs", action="store_true", help="show the checked out ref and sha")
    ls.set_defaults(func=_handle_plugins_ls)

    ls_remote = subparsers.add_parser("ls-remote", help="list versions a plugin can install")
    ls_remote.add_argument("name", help="plugin name")
    _add_vfox_flag(ls_remote)
    ls_remote.set_defaults(func=_handle_ls_remote)

    install_tool = subparsers.add_parser("install", help="install a tool version")
    install_tool.add_argument("spec", help="name@version")
    install_tool.add_argument("-f", "--force", action="store_true", help="reinstall the version")
    _add_vfox_flag(install_tool)
    install_tool.set_defaults(func=_handle_install)

    env = subparsers.add_parser("env", help="print the environment a tool version exports")
    env.add_argument("spec", help="name@version")
    _add_vfox_flag(env)
    env.set_defaults(func=_handle_env)

    status = subparsers.add_parser("status", help="show directories and active settings")
    status.set_defaults(func=_handle_status)

    return parser


def main(
    argv: Sequence[str] | None = None,
    *,
    app: TvmApp | None = None,
    env: Mapping[str, str] | None = None,
) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    env = os.environ if env is None else env
    _configure_logging(args, env)
    func = getattr(args, "func", None)
    if func is None:
        parser.print_help()
        return 0
    try:
        if app is None:
            app = TvmApp(
                dirs=dirs_from_env(env),
                env=env,
                overrides={"yes": args.yes, "paranoid": args.paranoid},
            )
        return func(app, args)
    except PluginNotInstalled as exc:
        print(f"[tvm] {exc}")
        return 1
    except RefusedUntrustedPlugin as exc:
        print(f"[tvm] refused: {exc}")
        return 1
    except TvmError as exc:
        print(f"[tvm] error: {exc}")
        return 1


def _configure_logging(args: argparse.Namespace, env: Mapping[str, str]) -> None:
    if args.verbose:
        level = logging.DEBUG
    elif args.quiet:
        level = logging.WARNING
    else:
        level = getattr(logging, env.get("TVM_LOG_LEVEL", "INFO").upper(), logging.INFO)
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s")


def _add_vfox_flag(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--vfox",
        dest="backend_type",
        action="store_const",
        const=BackendType.SCRIPT,
        default=BackendType.GIT,
        help="use the script-engine backend (experimental)",
    )


def _handle_plugins_install(app: TvmApp, args: argparse.Namespace) -> int:
    backend = app.backend(args.name, remote=args.url)
    if backend.ensure_installed(force=args.force):
        print(f"[tvm:plugins] {backend.name} installed")
    else:
        print(f"[tvm:plugins] {backend.name} already installed")
    return 0


def _handle_plugins_uninstall(app: TvmApp, args: argparse.Namespace) -> int:
    for name in args.names:
        backend = app.backend(name)
        if backend.uninstall():
            print(f"[tvm:plugins] {backend.name} uninstalled")
        else:
            print(f"[tvm:plugins] {backend.name} is not installed")
    return 0


def _handle_plugins_update(app: TvmApp, args: argparse.Namespace) -> int:
    targets: list[tuple[Backend, str | None]] = []
    if args.names:
        for item in args.names:
            name, _, gitref = item.partition("#")
            backend = app.backend(name)
            if not backend.is_installed():
                raise PluginNotInstalled(name)
            targets.append((backend, gitref or None))
    else:
        targets = [(backend, None) for backend in app.installed_plugins()]
    for backend, gitref in targets:
        backend.update(gitref)
        sha = backend.current_sha_short() or "-"
        print(f"[tvm:plugins] {backend.name} at {sha}")
    return 0


def _handle_plugins_ls(app: TvmApp, args: argparse.Namespace) -> int:
    plugins = app.installed_plugins()
    if not plugins:
        print("[tvm:plugins] no plugins installed")
        return 0
    for backend in plugins:
        columns = [backend.name]
        if args.urls:
            columns.append(backend.remote_url() or "")
        if args.refs:
            columns.append(backend.current_abbrev_ref() or "-")
            columns.append(backend.current_sha_short() or "-")
        print("  ".join(columns))
    return 0


def _handle_ls_remote(app: TvmApp, args: argparse.Namespace) -> int:
    backend = app.backend(args.name, backend_type=args.backend_type)
    backend.ensure_installed()
    for version in backend.list_remote_versions():
        print(version)
    return 0


def _handle_install(app: TvmApp, args: argparse.Namespace) -> int:
    try:
        name, version = parse_tool_spec(args.spec)
    except ValueError as exc:
        print(f"[tvm:install] error: {exc}")
        return 1
    backend = app.backend(name, backend_type=args.backend_type)
    backend.ensure_installed()
    ctx = InstallContext(ToolVersion.for_dirs(name, version, app.dirs), force=args.force)
    backend.install_version(ctx)
    print(f"[tvm:install] {name}@{version} -> {ctx.tool_version.install_path}")
    return 0


def _handle_env(app: TvmApp, args: argparse.Namespace) -> int:
    try:
        name, version = parse_tool_spec(args.spec)
    except ValueError as exc:
        print(f"[tvm:env] error: {exc}")
        return 1
    backend = app.backend(name, backend_type=args.backend_type)
    if not backend.is_installed():
        raise PluginNotInstalled(name)
    for key, value in sorted(backend.export_environment(version).items()):
        print(f"export {key}={shlex.quote(value)}")
    return 0


def _handle_status(app: TvmApp, _: argparse.Namespace) -> int:
    for key, value in app.status().items():
        print(f"[tvm:status] {key}={value}")
    return 0
