"""
Nodus Modules

- selector: label / field selector strings for class and phase queries
- scenario: typed steps and the YAML scenario loader
- catalog: node and pod class templates, read-only once loaded
- gateway: control plane access (Kubernetes API or in-memory)
- executor: per-verb step executors and the scenario runner

The executor depends on the other four; none of them import the executor.
"""
