"""
Include Cleaner — MCP Server

Exposes tools to GitHub Copilot via the Model Context Protocol:

  1. configure_workspace — set workspace root, include paths, defines, severity
  2. check_includes      — unused / redundantly-allowed #includes of one file
  3. explain_includes    — every tracked #include of a file with its verdict
                           and what credited it
  4. check_workspace     — run check_includes over every source file
"""

from mcp.server.fastmcp import FastMCP
import os
import sys

# Ensure the include_cleaner package is importable
sys.path.append(os.path.dirname(os.path.abspath(__file__)))

from include_cleaner.config import DEFAULT_CONFIG_NAME, load_config, parse_defines
from include_cleaner.diagnostics import format_diagnostic
from include_cleaner.front_end import AnalysisError, CFrontEnd, analyze_file
from include_cleaner.include_resolver import discover_include_dirs, discover_source_files


# ═══════════════════════════════════════════════════════════════════════
#  Server Setup
# ═══════════════════════════════════════════════════════════════════════

mcp = FastMCP("Include Cleaner")

config = None
front_end = None


def _analyze(file_path: str):
    """Run one translation unit.  Returns (result, error_message)."""
    full_path = front_end.absolute(file_path)
    if not os.path.isfile(full_path):
        return None, f"Error: File not found: {file_path}"
    try:
        return analyze_file(file_path, front_end=front_end), None
    except AnalysisError as e:
        return None, f"Error: {e}"


# ═══════════════════════════════════════════════════════════════════════
#  Tool 1 — Configure Workspace
# ═══════════════════════════════════════════════════════════════════════

@mcp.tool()
def configure_workspace(workspace_root: str, include_dirs: str = "", extra_defines: str = "",
                        warnings_as_errors: bool = False, config_path: str = "") -> str:
    """
    Points the include cleaner at a C workspace.

    Settings are read from ``config_path`` (or ``.include-cleaner.json`` in
    the workspace root, if present) and the arguments below override them.

    Args:
        workspace_root:     Root directory of the C sources.
        include_dirs:       Comma-separated include directories (relative to
                            workspace_root).  If empty and the config file gives
                            none, directories containing .h files are
                            auto-discovered.
                            Example: "include,src/common"
        extra_defines:      Comma-separated preprocessor defines (NAME=VALUE or NAME).
                            Example: "PLATFORM_X=1,ENABLE_CRYPTO"
        warnings_as_errors: Report findings as errors instead of warnings.
        config_path:        Optional path to a JSON config file.
    """
    global config, front_end

    if not os.path.isdir(workspace_root):
        return f"Error: Workspace root not found at {workspace_root}"

    if not config_path:
        candidate = os.path.join(workspace_root, DEFAULT_CONFIG_NAME)
        config_path = candidate if os.path.isfile(candidate) else ""
    elif not os.path.isfile(config_path):
        return f"Error: Config file not found at {config_path}"

    try:
        new_config = load_config(config_path or None, workspace_root=os.path.abspath(workspace_root))

        if include_dirs.strip():
            new_config.include_dirs = [d.strip() for d in include_dirs.split(",") if d.strip()]
        elif not new_config.include_dirs:
            new_config.include_dirs = discover_include_dirs(new_config.workspace_root)

        if extra_defines.strip():
            new_config.defines.update(parse_defines(extra_defines))
        if warnings_as_errors:
            new_config.warnings_as_errors = True

        config = new_config
        front_end = CFrontEnd(config)
    except Exception as e:
        return f"Error configuring workspace: {e}"

    severity = "error" if config.warnings_as_errors else "warning"
    return (
        f"Workspace configured: {config.workspace_root}\n"
        f"Include directories: {len(config.include_dirs)} configured.\n"
        f"Preprocessor defines: {len(config.defines)}.\n"
        f"Findings reported as: {severity}."
        + (f"\nConfig loaded from {config_path}." if config_path else "")
    )


# ═══════════════════════════════════════════════════════════════════════
#  Tool 2 — Check Includes
# ═══════════════════════════════════════════════════════════════════════

@mcp.tool()
def check_includes(file_path: str) -> str:
    """
    Reports unused #includes of a C source file, and includes marked
    ``/* include:allowed */`` that are in fact used.

    Args:
        file_path: Path to the .c file (relative to workspace_root).
    """
    if front_end is None:
        return "Error: Workspace not configured. Call configure_workspace first."

    result, error = _analyze(file_path)
    if error:
        return error

    if not result.diagnostics:
        return f"No include problems found in `{result.file_id}`."

    output = f"## Include Check — `{result.file_id}`\n\n"
    output += "| Line | Severity | Include | Finding |\n"
    output += "|------|----------|---------|---------|\n"
    for d in result.diagnostics:
        output += f"| {d.location.line} | {d.severity.value} | `{d.file_id}` | {d.message} |\n"
    output += "\n```\n" + "\n".join(format_diagnostic(d) for d in result.diagnostics) + "\n```\n"
    return output


# ═══════════════════════════════════════════════════════════════════════
#  Tool 3 — Explain Includes
# ═══════════════════════════════════════════════════════════════════════

@mcp.tool()
def explain_includes(file_path: str) -> str:
    """
    Shows every tracked #include of a file: its verdict, how many uses were
    credited to it, and which symbols or rules provided that credit.

    Args:
        file_path: Path to the .c file (relative to workspace_root).
    """
    if front_end is None:
        return "Error: Workspace not configured. Call configure_workspace first."

    result, error = _analyze(file_path)
    if error:
        return error

    if not result.verdicts:
        return f"`{result.file_id}` has no tracked #includes (system headers are not tracked)."

    output = f"## Includes of `{result.file_id}`\n\n"
    output += "| Line | Include | Verdict | Uses | Credited by |\n"
    output += "|------|---------|---------|------|-------------|\n"
    for v in result.verdicts:
        reasons = ", ".join(v.record.credited_by[:5])
        if len(v.record.credited_by) > 5:
            reasons += f", ... (+{len(v.record.credited_by) - 5})"
        flags = []
        if v.record.marked_allowed:
            flags.append("allowed")
        if v.record.marked_optional:
            flags.append("optional")
        verdict = v.verdict.value + (f" ({', '.join(flags)})" if flags else "")
        output += f"| {v.record.location.line} | `{v.file_id}` | **{verdict}** | {v.usage_count} | {reasons or '-'} |\n"
    return output


# ═══════════════════════════════════════════════════════════════════════
#  Tool 4 — Check Workspace
# ═══════════════════════════════════════════════════════════════════════

@mcp.tool()
def check_workspace() -> str:
    """
    Runs the include check on every source file under the workspace root
    and summarises the findings per file.
    """
    if front_end is None:
        return "Error: Workspace not configured. Call configure_workspace first."

    sources = discover_source_files(front_end.workspace_root, config.source_suffixes)
    if not sources:
        return "No source files found in the workspace."

    rows = []
    total = 0
    failed = 0
    for path in sources:
        result, error = _analyze(path)
        if error:
            failed += 1
            rows.append((path, "-", error))
            continue
        total += len(result.diagnostics)
        if result.diagnostics:
            names = ", ".join(f"`{d.file_id}`" for d in result.diagnostics)
            rows.append((result.file_id, str(len(result.diagnostics)), names))

    summary = "## Workspace Include Check\n\n"
    summary += "| Metric | Count |\n|--------|-------|\n"
    summary += f"| Source files | {len(sources)} |\n"
    summary += f"| Files with findings | {sum(1 for r in rows if r[1] != '-')} |\n"
    summary += f"| Findings | {total} |\n"
    summary += f"| Analysis failures | {failed} |\n"

    if rows:
        summary += "\n### Details\n\n"
        summary += "| File | Findings | Includes |\n"
        summary += "|------|----------|----------|\n"
        for path, count, detail in rows:
            summary += f"| `{path}` | {count} | {detail} |\n"
    return summary


if __name__ == "__main__":
    # Debug: Print loaded tools to stderr (visible in MCP logs)
    try:
        if hasattr(mcp, "_tool_manager") and hasattr(mcp._tool_manager, "_tools"):
            tools = mcp._tool_manager._tools.keys()
            print(f"DEBUG: Include Cleaner starting with {len(tools)} tools: {list(tools)}", file=sys.stderr)
        else:
            print("DEBUG: Include Cleaner starting (cannot inspect tools)", file=sys.stderr)
    except Exception as e:
        print(f"DEBUG: Error inspecting tools: {e}", file=sys.stderr)

    mcp.run()
