import wfsim.config as wfsim_config


# Config file with `simulation` and `vms` sections.
DEFAULT_CONFIG = wfsim_config.SIMULATION_CONFIG

# Deadline of workflow is its arrival time plus critical path length
# multiplied by this factor.
DEADLINE_FACTOR: float = 2.0

# Time between arrivals of consecutive workflows.
# Declared in seconds.
ARRIVAL_INTERVAL: float = 0.0

# Ratio of standard deviation of task runtime to its mean, used when
# traces have no information about runtime variance.
VARIANCE_FACTOR: float = 0.1
