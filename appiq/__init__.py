# appiq/__init__.py

"""
Appiq Solution installer package.

CLI entrypoint: python -m appiq.cli install  (or the `appiq` console script)

This package:
- Collects project choices into an immutable InstallationRequest
- Renders agents, templates, tasks and workflow docs into appiq-solution/
- Attaches the MCP integrations that apply to each agent (matcher)
- Copies the agents into every selected IDE folder (fanout)
"""

__version__ = "1.0.0"
