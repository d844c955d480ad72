"""
fatcat-cli command-line entry point.

Parses arguments, builds the API clients from configuration, and hands off
to :class:`EditWorkflow` or the search connector. Entities and edit results
go to stdout as one JSON object per line; logs and errors go to stderr.
"""

from __future__ import annotations

import argparse
import json
import logging
import os
import sys
from typing import Any, Optional

from dotenv import find_dotenv, load_dotenv

from fatcat_cli import __version__
from fatcat_cli.application.workflows.edit_workflow import EditWorkflow
from fatcat_cli.config import CliConfig
from fatcat_cli.domain.errors import ConfigurationError, FatcatCliError, UnsupportedOperation
from fatcat_cli.domain.mutation import parse_mutations
from fatcat_cli.domain.specifier import EntityKind, ExactSpecifier, parse_specifier
from fatcat_cli.infrastructure.api_clients.catalog_client import CatalogApiClient
from fatcat_cli.infrastructure.connectors.search_connector import SearchConnector
from fatcat_cli.infrastructure.files.entity_file import read_entity_file
from fatcat_cli.presentation.cli.output import print_editgroups, print_error, print_status
from fatcat_cli.utils.logging_config import configure_logging

# Load local .env so FATCAT_* settings work without exporting them.
load_dotenv(find_dotenv(usecwd=True), override=False)

logger = logging.getLogger(__name__)


def create_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="fatcat-cli",
        description="CLI interface to the fatcat catalog API",
    )
    parser.add_argument("--version", action="version", version=f"fatcat-cli {__version__}")
    parser.add_argument("--api-host", help="catalog API base URL (env FATCAT_API_HOST)")
    parser.add_argument("--api-token", help="API auth token (env FATCAT_API_AUTH_TOKEN)")
    parser.add_argument("--search-host", help="search backend base URL (env FATCAT_SEARCH_HOST)")
    parser.add_argument(
        "--verbose",
        "-v",
        action="count",
        default=0,
        help="pass many times for more log output (-v warnings, -vv info, -vvv debug)",
    )
    parser.add_argument("--quiet", "-q", action="store_true", help="suppress all log output")
    parser.add_argument("--log-file", help="also write logs to this file (env FATCAT_CLI_LOG_FILE)")

    subparsers = parser.add_subparsers(dest="command", help="available commands")

    status_parser = subparsers.add_parser("status", help="check API connectivity and auth token")
    status_parser.add_argument("--json", action="store_true", help="print status as JSON")

    get_parser = subparsers.add_parser("get", help="fetch a single entity")
    get_parser.add_argument("specifier", help="e.g. release_<ident>, doi:10.123/abc, changelog_42")
    get_parser.add_argument("--toml", action="store_true", help="print TOML instead of JSON")
    get_parser.add_argument("--expand", help="sub-entities to expand, comma separated")
    get_parser.add_argument("--hide", help="fields to hide, comma separated")

    create_cmd_parser = subparsers.add_parser("create", help="create an entity from JSON or TOML")
    create_cmd_parser.add_argument("entity_type", help="release, work, container, creator, file, fileset or webcapture")
    create_cmd_parser.add_argument("--file", "-f", dest="input_path", help='input file, "-" for stdin')
    _add_editgroup_option(create_cmd_parser)

    update_parser = subparsers.add_parser("update", help="update an entity from a file or field=value mutations")
    update_parser.add_argument("specifier")
    update_parser.add_argument("mutations", nargs="*", help="field=value edits; empty value clears the field")
    update_parser.add_argument("--file", "-f", dest="input_path", help='input file, "-" for stdin')
    _add_editgroup_option(update_parser)

    edit_parser = subparsers.add_parser("edit", help="edit an entity in $EDITOR")
    edit_parser.add_argument("specifier")
    edit_parser.add_argument("--json", action="store_true", help="edit as JSON instead of TOML")
    edit_parser.add_argument("--editing-command", help="editor command (env EDITOR)")
    _add_editgroup_option(edit_parser)

    delete_parser = subparsers.add_parser("delete", help="delete an entity")
    delete_parser.add_argument("specifier")
    _add_editgroup_option(delete_parser)

    search_parser = subparsers.add_parser("search", help="full-text search")
    search_parser.add_argument("entity_type", help="release, file or container")
    search_parser.add_argument("terms", nargs="*", help="query terms (default: match everything)")
    search_parser.add_argument("--limit", "-l", type=int, default=20, help="max hits; negative for no limit")
    search_parser.add_argument(
        "--search-schema",
        action="store_true",
        help="print raw search documents instead of re-fetching entities",
    )

    editgroup_parser = subparsers.add_parser("editgroup", help="manage editgroups")
    eg_sub = editgroup_parser.add_subparsers(dest="editgroup_command", required=True)

    eg_create = eg_sub.add_parser("create", help="create a new editgroup")
    eg_create.add_argument("--description", "-d", required=True)

    eg_list = eg_sub.add_parser("list", help="list editgroups of an editor")
    eg_list.add_argument("--editor-id", help="defaults to the editor of the auth token")
    eg_list.add_argument("--limit", "-l", type=int, default=20)
    eg_list.add_argument("--json", action="store_true")

    eg_reviewable = eg_sub.add_parser("reviewable", help="list editgroups awaiting review")
    eg_reviewable.add_argument("--limit", "-l", type=int, default=20)
    eg_reviewable.add_argument("--json", action="store_true")

    for name, help_text in (
        ("accept", "accept (merge) an editgroup"),
        ("submit", "submit an editgroup for review"),
        ("unsubmit", "withdraw an editgroup from review"),
    ):
        eg_action = eg_sub.add_parser(name, help=help_text)
        eg_action.add_argument("editgroup_id", nargs="?", help="defaults to FATCAT_EDITGROUP")

    return parser


def _add_editgroup_option(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--editgroup-id", "-e", help="editgroup to make the edit in (env FATCAT_EDITGROUP)"
    )


def _load_config(parsed: argparse.Namespace) -> CliConfig:
    config = CliConfig.from_env()
    if parsed.api_host:
        config.api_host = parsed.api_host
    if parsed.api_token:
        config.api_token = parsed.api_token
    if parsed.search_host:
        config.search_host = parsed.search_host
    return config


def _create_api(config: CliConfig) -> CatalogApiClient:
    return CatalogApiClient(config.api_host, config.api_token, timeout_s=config.api_timeout_s)


def _create_search(config: CliConfig) -> SearchConnector:
    return SearchConnector(config.search_host)


def _create_workflow(config: CliConfig) -> EditWorkflow:
    try:
        api = _create_api(config)
    except FatcatCliError as err:
        raise err.add_context("Failed to create API client")
    return EditWorkflow(api)


def _require_editgroup(parsed: argparse.Namespace, config: CliConfig) -> str:
    editgroup_id = getattr(parsed, "editgroup_id", None) or config.editgroup_id
    if not editgroup_id:
        raise ConfigurationError("an editgroup is required: pass --editgroup-id or set FATCAT_EDITGROUP")
    return editgroup_id


def _print_json(value: Any) -> None:
    print(json.dumps(value, ensure_ascii=False, separators=(",", ":")))


def run_cli(args: Optional[list] = None) -> int:
    parser = create_parser()
    parsed = parser.parse_args(args)
    configure_logging(-1 if parsed.quiet else parsed.verbose, parsed.log_file)
    logger.debug("Args parsed, starting up")

    if not parsed.command:
        parser.print_help()
        return 0

    try:
        return _dispatch(parsed, _load_config(parsed))
    except BrokenPipeError:
        # stdout closed early, e.g. piped into `head`
        logger.debug("got BrokenPipe, assuming stdout closed as expected")
        _silence_stdout()
        return 0
    except FatcatCliError as err:
        print_error(str(err))
        return 1


def _silence_stdout() -> None:
    try:
        devnull = os.open(os.devnull, os.O_WRONLY)
        os.dup2(devnull, sys.stdout.fileno())
        os.close(devnull)
    except (OSError, ValueError, AttributeError):
        pass


def _dispatch(parsed: argparse.Namespace, config: CliConfig) -> int:
    command = parsed.command

    if command == "search":
        return _run_search(parsed, config)

    workflow = _create_workflow(config)

    if command == "status":
        status = workflow.status()
        if parsed.json:
            _print_json(status.to_dict())
        else:
            print_status(status)
        return 0

    if command == "get":
        record = workflow.get(parse_specifier(parsed.specifier), expand=parsed.expand, hide=parsed.hide)
        print(record.to_toml() if parsed.toml else record.to_json())
        return 0

    if command == "create":
        kind = EntityKind.parse(parsed.entity_type)
        editgroup_id = _require_editgroup(parsed, config)
        json_text = read_entity_file(parsed.input_path)
        _print_json(workflow.create(kind, json_text, editgroup_id))
        return 0

    if command == "update":
        specifier = parse_specifier(parsed.specifier)
        mutations = parse_mutations(parsed.mutations)
        editgroup_id = _require_editgroup(parsed, config)
        json_text = None
        if parsed.input_path is not None or not mutations:
            json_text = read_entity_file(parsed.input_path)
        _print_json(
            workflow.update(specifier, editgroup_id, json_text=json_text, mutations=mutations)
        )
        return 0

    if command == "edit":
        specifier = parse_specifier(parsed.specifier)
        editgroup_id = _require_editgroup(parsed, config)
        editing_command = parsed.editing_command or config.editing_command
        if not editing_command:
            raise ConfigurationError("no editor configured: pass --editing-command or set EDITOR")
        _print_json(
            workflow.edit(specifier, editgroup_id, editing_command, json_format=parsed.json)
        )
        return 0

    if command == "delete":
        specifier = parse_specifier(parsed.specifier)
        editgroup_id = _require_editgroup(parsed, config)
        _print_json(workflow.delete(specifier, editgroup_id))
        return 0

    if command == "editgroup":
        return _run_editgroup(parsed, config, workflow)

    raise ConfigurationError(f"unknown command: {command}")


def _run_editgroup(parsed: argparse.Namespace, config: CliConfig, workflow: EditWorkflow) -> int:
    action = parsed.editgroup_command
    if action == "create":
        print(workflow.create_editgroup(parsed.description).to_json())
    elif action == "list":
        editgroups = workflow.list_editgroups(parsed.editor_id, limit=parsed.limit)
        print_editgroups(editgroups, as_json=parsed.json)
    elif action == "reviewable":
        editgroups = workflow.list_reviewable_editgroups(limit=parsed.limit)
        print_editgroups(editgroups, as_json=parsed.json)
    elif action == "accept":
        _print_json(workflow.accept_editgroup(_require_editgroup(parsed, config)))
    elif action == "submit":
        print(workflow.submit_editgroup(_require_editgroup(parsed, config)).to_json())
    elif action == "unsubmit":
        print(workflow.unsubmit_editgroup(_require_editgroup(parsed, config)).to_json())
    return 0


def _run_search(parsed: argparse.Namespace, config: CliConfig) -> int:
    kind = EntityKind.parse(parsed.entity_type)
    limit = None if parsed.limit < 0 else parsed.limit
    try:
        results = _create_search(config).search(kind, parsed.terms, limit)
    except FatcatCliError as err:
        raise err.add_context(f"searching for {kind.value}")
    print(f"Got {results.count} hits in {results.took_ms}ms", file=sys.stderr)

    workflow: Optional[EditWorkflow] = None
    for hit in results:
        if parsed.search_schema:
            _print_json(hit)
            continue
        if kind is not EntityKind.RELEASE:
            raise UnsupportedOperation(
                f"re-fetching {kind.value} search hits is not supported; use --search-schema"
            )
        ident = hit.get("ident") if isinstance(hit, dict) else None
        if not ident:
            raise FatcatCliError("search hit is missing an ident")
        workflow = workflow or _create_workflow(config)
        print(workflow.get(ExactSpecifier(kind=EntityKind.RELEASE, ident=ident)).to_json())
    return 0


def main() -> None:
    sys.exit(run_cli())


if __name__ == "__main__":
    main()
