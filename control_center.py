"""
Command-line front end for the llama-server control center.

Drives the same command/event boundary a graphical shell would use:
list and install release binaries, list models, and run the server in the
foreground while streaming its log.
"""
from __future__ import annotations

import argparse
import asyncio
import logging
import signal
import sys

from app.container import build_container
from app.settings import build_settings
from interfaces.events.events import DOWNLOAD_PROGRESS, SERVER_LOG, SERVER_STATUS
from interfaces.release.asset import Release


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Install llama.cpp server binaries and supervise llama-server",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Debug logging")
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("releases", help="List assets of the latest release")

    install = sub.add_parser("install", help="Download and install a release asset")
    install.add_argument("asset", help="Asset file name from `releases`")
    install.add_argument("--auxiliary", action="store_true", help="Install beside the current binary (e.g. cudart)")
    install.add_argument(
        "--with-runtime",
        action="store_true",
        help="Also install the matching CUDA runtime asset when one exists",
    )

    sub.add_parser("installed", help="Show the installed binary")
    sub.add_parser("wipe", help="Remove all installed binaries")
    sub.add_parser("models", help="List model files")

    config = sub.add_parser("config", help="Show the stored configuration")
    config.add_argument("--reset", action="store_true", help="Restore defaults first")

    serve = sub.add_parser("serve", help="Run llama-server in the foreground")
    serve.add_argument("model", help="Model file name inside the models folder")
    serve.add_argument("--port", type=int)
    serve.add_argument("--host")
    serve.add_argument("--ctx-size", dest="context_size", type=int)
    serve.add_argument("--gpu-layers", dest="gpu_layers", type=int)
    serve.add_argument("--threads", type=int)
    serve.add_argument("--batch-size", dest="batch_size", type=int)
    serve.add_argument("--flash-attn", dest="flash_attention", action="store_true", default=None)
    serve.add_argument("--mlock", action="store_true", default=None)
    serve.add_argument("--no-mmap", dest="no_mmap", action="store_true", default=None)
    serve.add_argument("--api-key", dest="api_key")

    return parser.parse_args(argv)


def _fail(result) -> int:
    print(f"Error [{result.error.kind}]: {result.error.detail}", file=sys.stderr)
    if result.error.category in {"network", "corrupt"}:
        print("Check your connection and retry the download.", file=sys.stderr)
    elif result.error.category == "filesystem":
        print("Check free disk space and folder permissions.", file=sys.stderr)
    return 1


async def _latest_release(control) -> Release | None:
    result = await control.fetch_releases()
    if not result.ok:
        _fail(result)
        return None
    return result.value


async def run(args: argparse.Namespace) -> int:
    # Build config (paths/control) and wire services
    app_cfg = build_settings()
    deps = build_container(app_cfg)
    control = deps["control"]
    events = deps["events"]

    if args.command == "releases":
        release = await _latest_release(control)
        if release is None:
            return 1
        print(f"Release {release.version_tag}")
        for asset in release.assets:
            print(f"  {asset.name:<60} {asset.size_bytes / (1024 * 1024):8.2f} MB")
        return 0

    if args.command == "install":
        release = await _latest_release(control)
        if release is None:
            return 1
        asset = release.find(args.asset)
        if asset is None:
            print(f"No asset named {args.asset} in release {release.version_tag}", file=sys.stderr)
            return 1

        def show_progress(event) -> None:
            if event.channel == DOWNLOAD_PROGRESS:
                print(f"\r{event.name}: {event.progress:3d}% {event.status}", end="", flush=True)

        events.subscribe(show_progress)
        result = await control.install_binary(asset, args.auxiliary)
        print()
        if not result.ok:
            return _fail(result)
        if result.value is not None:
            print(f"Installed {result.value.name} (build {result.value.version_tag})")

        runtime = control.find_auxiliary_asset(asset, release.assets)
        if runtime is not None and not args.auxiliary:
            if not args.with_runtime:
                print(f"Suggested runtime: {runtime.name} (rerun with --with-runtime to install it)")
                return 0
            result = await control.install_binary(runtime, True)
            print()
            if not result.ok:
                return _fail(result)
            print(f"Installed runtime {runtime.name}")
        return 0

    if args.command == "installed":
        result = await control.get_installed_binary()
        if not result.ok:
            return _fail(result)
        record = result.value
        print(f"{record.name} (build {record.version_tag}, installed {record.installed_at})" if record else "No binary installed")
        return 0

    if args.command == "wipe":
        result = await control.wipe_binaries()
        return 0 if result.ok else _fail(result)

    if args.command == "models":
        result = await control.list_models()
        if not result.ok:
            return _fail(result)
        for model in result.value:
            print(f"{model.name:<60} {model.size_bytes / (1024 ** 3):6.2f} GB")
        return 0

    if args.command == "config":
        result = await (control.reset_config() if args.reset else control.get_config())
        if not result.ok:
            return _fail(result)
        for key, value in result.value.items():
            print(f"{key}: {value}")
        return 0

    if args.command == "serve":
        return await _serve(args, control, events)

    return 2


async def _serve(args: argparse.Namespace, control, events) -> int:
    params = {
        key: getattr(args, key)
        for key in ("port", "host", "context_size", "gpu_layers", "threads",
                    "batch_size", "flash_attention", "mlock", "no_mmap", "api_key")
        if getattr(args, key) is not None
    }
    done = asyncio.Event()

    def on_event(event) -> None:
        if event.channel == SERVER_LOG:
            stream = sys.stderr if event.type == "error" else sys.stdout
            print(event.message, file=stream)
        elif event.channel == SERVER_STATUS:
            if event.running:
                print(f"Server running with {event.model}")
            else:
                done.set()

    events.subscribe(on_event)

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, done.set)
        except (NotImplementedError, RuntimeError):
            # Windows event loops: Ctrl-C surfaces as KeyboardInterrupt instead
            pass

    result = await control.start_server(args.model, params)
    if not result.ok:
        return _fail(result)

    try:
        await done.wait()
    finally:
        # Stop llama-server explicitly on normal shutdown
        await control.shutdown()
    return 0


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    try:
        return asyncio.run(run(args))
    except KeyboardInterrupt:
        return 130


if __name__ == "__main__":
    sys.exit(main())
