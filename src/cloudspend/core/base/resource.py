from dataclasses import dataclass, field
from typing import Dict, Any, Optional
from enum import Enum


class CloudProvider(str, Enum):
    AWS = "aws"
    AZURE = "azure"
    GCP = "gcp"


class ResourceType(Enum):
    COMPUTE = "compute"
    STORAGE = "storage"
    NETWORK = "network"
    DATABASE = "database"
    CONTAINER = "container"
    SERVERLESS = "serverless"
    OTHER = "other"


# Resource type names that identify virtual machines across providers
COMPUTE_TYPE_MARKERS = ("ec2", "virtual machine", "vm", "compute engine", "gce", "instance")


@dataclass(frozen=True)
class ResourceUtilization:
    """Average utilization percentages (0-100)"""
    cpu: float = 0.0
    memory: float = 0.0
    storage: Optional[float] = None
    network: Optional[float] = None

    @property
    def peak(self) -> float:
        return max(self.cpu, self.memory)

    @property
    def average(self) -> float:
        return (self.cpu + self.memory) / 2


@dataclass(frozen=True)
class Resource:
    """A cloud resource as seen by the recommendation engine"""

    resource_id: str
    resource_type: str
    monthly_cost: float
    name: Optional[str] = None
    cloud_provider: str = CloudProvider.AWS.value
    region: Optional[str] = None
    availability_zone: Optional[str] = None
    utilization: Optional[ResourceUtilization] = None
    tags: Dict[str, str] = field(default_factory=dict)

    @property
    def display_name(self) -> str:
        return self.name or self.resource_type

    @property
    def location(self) -> str:
        """Region or availability zone used for placement analysis"""
        return self.region or self.availability_zone or "unknown"

    @property
    def category(self) -> ResourceType:
        lowered = self.resource_type.lower()
        if self.is_compute:
            return ResourceType.COMPUTE
        for resource_type in ResourceType:
            if resource_type.value in lowered:
                return resource_type
        return ResourceType.OTHER

    @property
    def is_compute(self) -> bool:
        lowered = self.resource_type.lower()
        return lowered == ResourceType.COMPUTE.value or any(
            marker in lowered for marker in COMPUTE_TYPE_MARKERS
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert resource to dictionary"""
        return {
            "resource_id": self.resource_id,
            "name": self.name,
            "resource_type": self.resource_type,
            "cloud_provider": self.cloud_provider,
            "region": self.region,
            "availability_zone": self.availability_zone,
            "utilization": {
                "cpu": self.utilization.cpu,
                "memory": self.utilization.memory,
            } if self.utilization else None,
            "monthly_cost": self.monthly_cost,
            "tags": dict(self.tags),
        }
