import argparse
import asyncio
import logging
import os
import sys

from .components import COMPONENTS
from .config import DEFAULT_ATTEMPTS, DEFAULT_TIMEOUT_MINUTES, InstallSettings, RemoveSettings, env_namespace
from .source import DEFAULT_FILE_SOURCE, ManifestSource

logger = logging.getLogger("razeedeploy.cli")


def _add_common(parser: argparse.ArgumentParser, verb: str) -> None:
    parser.add_argument(
        "-n", "--namespace",
        default=env_namespace(),
        help=f"namespace to {verb} razeedeploy resources (Default 'razeedeploy')",
    )
    parser.add_argument(
        "-s", "--file-source",
        default=DEFAULT_FILE_SOURCE,
        help="url that razeedeploy resource files are sourced from (Default 'https://github.com/razee-io')",
    )
    parser.add_argument(
        "--fp", "--file-path",
        dest="file_path",
        default=None,
        help="path after each component, e.g. ${fileSource}/WatchKeeper/${filePath} "
             "(Default 'releases/{{install_version}}/resource.yaml')",
    )
    for component in COMPONENTS:
        parser.add_argument(
            *component.flags,
            dest=component.key,
            nargs="?",
            const="latest",
            default=None,
            metavar="VERSION",
            help=f"{verb} {component.key} at a specific version (Default 'latest')",
        )


def build_parser() -> argparse.ArgumentParser:
    logging_opts = argparse.ArgumentParser(add_help=False)
    logging_opts.add_argument(
        "--log-level",
        default=os.getenv("LOG_LEVEL", "INFO"),
        help="Logging level (DEBUG, INFO, WARNING, ERROR)",
    )
    logging_opts.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug logging (overrides --log-level to DEBUG)",
    )

    parser = argparse.ArgumentParser(prog="razeedeploy", description="Install or remove razeedeploy components")
    sub = parser.add_subparsers(dest="command", required=True)

    install = sub.add_parser("install", parents=[logging_opts], help="install razeedeploy components")
    _add_common(install, "install")
    install.add_argument(
        "-r", "--registry",
        default=os.getenv("RAZEEDEPLOY_REGISTRY"),
        help="image registry to install razeedeploy images from (Default 'quay.io/razee/')",
    )
    install.add_argument("--rd-url", "--razeedash-url", dest="razeedash_url", help="url that watchkeeper should post data to")
    install.add_argument("--rd-api", "--razeedash-api", dest="razeedash_api", help="razee api baseUrl")
    install.add_argument("--rd-org-key", "--razeedash-org-key", dest="razeedash_org_key", help="org key used to authenticate with razee")
    install.add_argument("--rd-cluster-id", "--razeedash-cluster-id", dest="razeedash_cluster_id", help="cluster id to use in RazeeDash")
    install.add_argument(
        "--rd-cluster-metadata64", "--razeedash-cluster-metadata64",
        dest="razeedash_cluster_metadata64",
        help="base64 encoded JSON object of cluster metadata entries {key: value, ...}",
    )
    install.add_argument(
        "--iw-cert",
        dest="webhook_cert64",
        help="base64 encoded JSON object with base64 PEM 'ca', 'server' and 'key' for the impersonation webhook",
    )
    install.add_argument(
        "-f", "--force",
        action="store_true",
        help="overwrite prerequisite configuration already installed on the cluster",
    )
    install.add_argument(
        "-a", "--autoupdate",
        action="store_true",
        help="create a remoteresource that keeps the installed resources updated to latest",
    )

    remove = sub.add_parser("remove", parents=[logging_opts], help="remove razeedeploy components")
    _add_common(remove, "remove")
    remove.add_argument(
        "--dn", "--delete-namespace",
        dest="delete_namespace",
        action="store_true",
        help="include namespace as a resource to delete",
    )
    remove.add_argument(
        "-t", "--timeout",
        dest="timeout_minutes",
        type=float,
        default=DEFAULT_TIMEOUT_MINUTES,
        help="time (minutes) before failing to delete CRD (Default 5)",
    )
    remove.add_argument(
        "-a", "--attempts",
        type=int,
        default=DEFAULT_ATTEMPTS,
        help="number of attempts to verify CRD is deleted before failing (Default 5)",
    )
    remove.add_argument(
        "-f", "--force",
        action="store_true",
        help="force delete the CRD and CR instances without allowing the controller to clean up children",
    )
    return parser


def _versions(args) -> dict:
    return {c.key: getattr(args, c.key) for c in COMPONENTS}


def install_settings(args) -> InstallSettings:
    return InstallSettings(
        namespace=args.namespace,
        file_source=args.file_source,
        file_path=args.file_path,
        registry=args.registry,
        versions=_versions(args),
        razeedash_url=args.razeedash_url,
        razeedash_api=args.razeedash_api,
        razeedash_org_key=args.razeedash_org_key,
        razeedash_cluster_id=args.razeedash_cluster_id,
        razeedash_cluster_metadata64=args.razeedash_cluster_metadata64,
        webhook_cert64=args.webhook_cert64,
        force=args.force,
        autoupdate=args.autoupdate,
    )


def remove_settings(args) -> RemoveSettings:
    return RemoveSettings(
        namespace=args.namespace,
        file_source=args.file_source,
        file_path=args.file_path,
        versions=_versions(args),
        delete_namespace=args.delete_namespace,
        force=args.force,
        attempts=max(args.attempts, 1),
        timeout_minutes=args.timeout_minutes,
    )


def configure_logging(args) -> str:
    level_name = "DEBUG" if args.debug else args.log_level.upper()
    level = getattr(logging, level_name, logging.INFO)
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )
    return level_name


def main(argv=None, client=None) -> int:
    args = build_parser().parse_args(argv)
    level_name = configure_logging(args)
    logger.info("Running %s with level %s", args.command, level_name)

    try:
        source = ManifestSource(args.file_source, args.file_path)
    except ValueError as e:
        logger.error("%s", e)
        return 1

    if client is None:
        from .kube.client import get_kube_client

        client = get_kube_client()

    if args.command == "install":
        from .install import Installer

        runner = Installer(install_settings(args), client, source)
    else:
        from .remove import Remover

        runner = Remover(remove_settings(args), client, source)

    result = asyncio.run(runner.run())
    logger.info("%s finished: %s", args.command, result.summary)
    return result.exit_code


def run() -> None:
    sys.exit(main())
