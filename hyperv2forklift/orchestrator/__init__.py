# hyperv2forklift/orchestrator/__init__.py
from .orchestrator import Orchestrator
from .pipeline import Pipeline, VMArtifacts, load_vm_records

__all__ = ["Orchestrator", "Pipeline", "VMArtifacts", "load_vm_records"]
