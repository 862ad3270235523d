"""Health subsystem — checks, registry, aggregate state, scheduler."""

from .checks import Check, DnsCheck, MetadataCheck, Outcome, StorageCheck
from .registry import CheckRegistry, CheckRegistryError, build_registry
from .scheduler import HealthScheduler
from .state import NodeHealth
