"""bundlesmith - scaffold and validate capability bundles.

A bundle is a directory holding a manifest, skills, commands, agents and
optional MCP server connectors that a host application discovers and loads.
bundlesmith creates bundle skeletons from templates, validates manifests and
skill descriptors, and merges MCP server definitions into a bundle.
"""

__version__ = "0.1.0"
