from moving_cloud.assembly import ConservedStateAssembler
from moving_cloud.fields import DeviceField, HostStagingBuffer
from moving_cloud.generator import initialize_mesh, initialize_mesh_data, problem_generator
from moving_cloud.mesh import Mesh, MeshBlock, MeshBlockDomain
from moving_cloud.parameters import (
    HydroPackage,
    ParameterInput,
    ParameterResolver,
    ProblemContext,
    SimulationParameters,
)
from moving_cloud.profiles import ProfileInitializer
from moving_cloud.units import UnitSystem
from moving_cloud.utilities.exceptions import ConfigurationError, MissingParameterError
