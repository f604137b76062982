"""mnemo rich error messages — actionable feedback.

Every error shown to the user must contain:
  1. What went wrong (clear cause)
  2. The exact action the user should take to fix it

Usage:
    from mnemo.cli.errors import err_no_api_key
    console.print(err_no_api_key("openai"))
    raise typer.Exit(1)
"""

from __future__ import annotations


def err_no_api_key(provider: str) -> str:
    """No API key for *provider*.

    Example:
        No API key for 'openai'. Set:  export OPENAI_API_KEY=sk-...
    """
    env_map = {
        "openai": "OPENAI_API_KEY",
        "anthropic": "ANTHROPIC_API_KEY",
        "cohere": "COHERE_API_KEY",
        "gemini": "GEMINI_API_KEY",
        "mistral": "MISTRAL_API_KEY",
        "azure": "AZURE_API_KEY",
        "voyage": "VOYAGE_API_KEY",
    }
    env_var = env_map.get(provider.lower(), f"{provider.upper()}_API_KEY")
    return (
        f"[red]Error:[/] No API key for '{provider}'.\n"
        f"  Set:  export {env_var}=sk-..."
    )


def err_config(message: str) -> str:
    """Configuration could not be loaded or validated."""
    return (
        f"[red]Error:[/] Invalid configuration: {message}\n"
        "  Check ~/.mnemo/config.yaml and the MNEMO_* environment variables."
    )


def err_storage(message: str) -> str:
    """The vector store cannot be opened."""
    return (
        f"[red]Error:[/] Vector store unavailable: {message}\n"
        "  Check that the home directory is writable, or pass --home PATH."
    )


def err_provider(message: str) -> str:
    """The embedding or completion provider failed."""
    return (
        f"[red]Error:[/] Language-model provider failed: {message}\n"
        "  Check your network connection, API key and model names, then retry."
    )


def err_corrupt(message: str) -> str:
    """Stored data could not be decoded."""
    return (
        f"[red]Error:[/] Stored data is corrupt: {message}\n"
        "  A previous generation of each file is kept next to it as <file>.bak."
    )


def err_fact_not_found(fact_id: str) -> str:
    return (
        f"[red]Error:[/] No fact with ID '{fact_id}'.\n"
        "  Run:  mnemo facts list  to see all fact IDs."
    )


def err_conversation_not_found(uuid: str) -> str:
    return (
        f"[red]Error:[/] No conversation with UUID '{uuid}'.\n"
        "  Run:  mnemo conversations list  to see all conversations."
    )


def err_not_indexable(path: str, message: str) -> str:
    """Project root failed the indexer preconditions."""
    return (
        f"[red]Error:[/] Cannot index '{path}': {message}\n"
        "  The project root must be a git checkout with a valid .gitignore."
    )


def err_no_project() -> str:
    """Project-file search requested without a project."""
    return (
        "[yellow]No project configured.[/]\n"
        "  Pass --project PATH or set MNEMO_PROJECT, after running:  mnemo index PATH"
    )
