"""
Nodus - Scenario-driven Kubernetes Control Plane Harness

Drives a cluster control plane through scripted scenarios of
assert / create / change / delete steps over classes of nodes and pods.

Architecture:
- Each module is self-contained with clear interfaces
- Modules are completely replaceable
- No module knows the internals of another
- All communication through defined interfaces

Modules:
- selector: Label and field selector construction
- gateway: Control plane access (Kubernetes API or in-memory)
- catalog: Node and pod class templates
- scenario: Scenario and step models, YAML loading
- executor: Step executors and the scenario runner
"""

__version__ = "1.0.0"
