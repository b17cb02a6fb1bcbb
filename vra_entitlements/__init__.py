"""vra-entitlements: catalog source entitlements as a declarative resource.

Maps a ``(catalog_source_id, project_id)`` pair onto create/read/delete
calls against the VMware Aria Automation (vRA) Service Broker catalog API.
The ``check`` subcommand runs the full resource lifecycle against a live
server and reports each step.
"""

__version__ = "0.3.1"
