"""dotenvify command-line interface.

Two modes share one writer:
- File mode: reformat a local key/value file
- Azure mode: fetch Azure DevOps variable group(s)

Both produce a name/value mapping that is merged with preserved values,
filtered, quoted and written with write_variables().
"""

import logging
import sys

import click
from rich.console import Console
from rich.markup import escape

from dotenvify import __version__
from dotenvify.azure_auth import AzureCLICredentialHelper
from dotenvify.config_manager import ConfigManager, DotenvifyConfig
from dotenvify.devops_client import fetch_variables, parse_devops_url
from dotenvify.env_format import OutputPolicy, parse_name_list
from dotenvify.env_writer import read_env_file, resolve_output_path, write_variables
from dotenvify.errors import DotenvifyError, InvalidArgumentError

logger = logging.getLogger(__name__)

console = Console(highlight=False, soft_wrap=True)
err_console = Console(stderr=True, highlight=False, soft_wrap=True)

__all__ = ["main"]


def _resolve_project(config: DotenvifyConfig) -> tuple[str, str]:
    """Work out organization and project, prompting for a URL as a last resort."""
    if config.url:
        org, project = parse_devops_url(config.url)
    elif config.organization and config.project:
        org, project = config.organization, config.project
    else:
        console.print("[yellow]No Azure DevOps URL or organization/project provided[/yellow]")
        url = click.prompt(
            "Enter your Azure DevOps project URL (e.g., https://dev.azure.com/org/project)",
            default="",
            show_default=False,
        ).strip()
        if not url:
            raise InvalidArgumentError("No Azure DevOps URL provided")
        org, project = parse_devops_url(url)

    console.print(
        f"Using Azure DevOps organization: [bold]{escape(org)}[/bold], "
        f"project: [bold]{escape(project)}[/bold]"
    )
    return org, project


def _run_azure(config: DotenvifyConfig, groups: tuple[str, ...], policy: OutputPolicy) -> None:
    org, project = _resolve_project(config)
    group_names = list(groups) or [config.variable_group]

    variables = fetch_variables(
        org,
        project,
        group_names,
        credential_helper=AzureCLICredentialHelper(),
        include_disabled=config.include_disabled,
    )
    result = write_variables(variables, config.output_file, policy)

    console.print(
        f"[green]Variables successfully fetched and saved to '{escape(str(result.path))}' "
        f"({result.variable_count} written)[/green]"
    )


def _run_file(source: str | None, output: str, policy: OutputPolicy) -> None:
    if not source:
        raise InvalidArgumentError("No source file provided. Usage: dotenvify SOURCE [OUTPUT]")

    parsed = read_env_file(source)
    if parsed.has_errors and not parsed.variables:
        for error in parsed.errors:
            err_console.print(escape(str(error)))
        raise DotenvifyError(f"No variables could be parsed from '{source}'")

    output_path = resolve_output_path(source, output, parsed.has_errors)
    if parsed.has_errors:
        err_console.print(
            f"[yellow]Some errors occurred. Output saved to '{escape(str(output_path))}'[/yellow]"
        )
        for error in parsed.errors:
            err_console.print(escape(str(error)))

    result = write_variables(parsed.variables, output_path, policy)

    if not parsed.has_errors:
        console.print(
            f"[green]Variables successfully formatted and saved to '{escape(str(result.path))}' "
            f"({result.variable_count} written)[/green]"
        )


@click.command(name="dotenvify", context_settings={"help_option_names": ["-h", "--help"]})
@click.argument("source", required=False, type=click.Path(dir_okay=False))
@click.argument("output_arg", metavar="[OUTPUT]", required=False, type=click.Path(dir_okay=False))
@click.option("--azure", is_flag=True, help="Fetch variables from Azure DevOps")
@click.option("--url", help="Azure DevOps project URL (default: $AZURE_DEVOPS_URL)")
@click.option("--org", help="Azure DevOps organization (default: $AZURE_DEVOPS_ORG)")
@click.option("--project", help="Azure DevOps project (default: $AZURE_DEVOPS_PROJECT)")
@click.option(
    "--group",
    "groups",
    multiple=True,
    help="Variable group name, repeatable (default: current directory name)",
)
@click.option("--output", "-o", help="Output file path (default: .env)")
@click.option("--no-sort", is_flag=True, help="Keep source order instead of sorting names")
@click.option("--no-lower", is_flag=True, help="Skip all-lowercase variable names")
@click.option("--export", "use_export", is_flag=True, help="Prefix lines with 'export '")
@click.option("--url-only", is_flag=True, help="Only write variables whose value is an http(s) URL")
@click.option("--overwrite", is_flag=True, help="Overwrite output without a numbered backup")
@click.option("--preserve", help="Comma separated names whose existing values are kept")
@click.option("--include-disabled", is_flag=True, help="Include variables disabled in Azure DevOps")
@click.option("--config", "config_path", type=click.Path(), help="Config file path")
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
@click.option("--pat", hidden=True, help="Deprecated: authentication is handled by Azure CLI")
@click.option("--env", "env_filter", hidden=True, help="Deprecated: environment filtering")
@click.version_option(__version__, prog_name="dotenvify")
def main(
    source: str | None,
    output_arg: str | None,
    azure: bool,
    url: str | None,
    org: str | None,
    project: str | None,
    groups: tuple[str, ...],
    output: str | None,
    no_sort: bool,
    no_lower: bool,
    use_export: bool,
    url_only: bool,
    overwrite: bool,
    preserve: str | None,
    include_disabled: bool,
    config_path: str | None,
    verbose: bool,
    pat: str | None,
    env_filter: str | None,
) -> None:
    """Convert key/value data into KEY=VALUE lines.

    \b
    Examples:
        # Reformat a file of name/value pairs into .env
        $ dotenvify vars.txt

        # Write to a specific file with export prefixes
        $ dotenvify vars.txt prod.env --export

        # Fetch an Azure DevOps variable group
        $ dotenvify --azure --url https://dev.azure.com/contoso/web --group web-dev

        # Refresh .env but keep the local DATABASE_URL
        $ dotenvify --azure --org contoso --project web --preserve DATABASE_URL

    \b
    CONFIGURATION:
        Config file: ~/.dotenvify/config.toml
        Environment: AZURE_DEVOPS_ORG, AZURE_DEVOPS_PROJECT, AZURE_DEVOPS_URL
    """
    logging.basicConfig(level=logging.DEBUG if verbose else logging.INFO, format="%(message)s")

    if pat:
        logger.warning("--pat is deprecated and ignored; authentication uses Azure CLI")
    if env_filter:
        logger.warning("--env is deprecated and ignored")

    try:
        config = ConfigManager.resolve(
            config_path,
            url=url,
            organization=org,
            project=project,
            output_file=output,
            include_disabled=include_disabled or None,
        )
        policy = OutputPolicy(
            sort_keys=not no_sort,
            use_export_prefix=use_export,
            lowercase_filter=no_lower,
            url_only_filter=url_only,
            overwrite_existing=overwrite,
            preserve_names=parse_name_list(preserve) | frozenset(config.preserve),
        )

        if azure:
            _run_azure(config, groups, policy)
        else:
            _run_file(source, output_arg or config.output_file, policy)

    except DotenvifyError as e:
        err_console.print(f"[red]Error: {escape(str(e))}[/red]")
        sys.exit(1)


if __name__ == "__main__":
    main()
