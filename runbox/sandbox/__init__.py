"""Sandbox orchestration: image provisioning, bundle injection and output capture."""

from runbox.sandbox.archive import ArchiveBuilder
from runbox.sandbox.demux import OutputDemuxer
from runbox.sandbox.images import ImageProvisioner
from runbox.sandbox.orchestrator import SandboxOrchestrator

__all__ = ["ArchiveBuilder", "ImageProvisioner", "OutputDemuxer", "SandboxOrchestrator"]
