from dataclasses import dataclass
import json
import pathlib
import typing as tp


SRC_DIR = pathlib.Path(__file__).parent.parent.absolute()
LOGS_DIR = str(SRC_DIR / "logs")

RESOURCES_DIR = SRC_DIR / "resources"
SIMULATION_CONFIG = str(RESOURCES_DIR / "simulation.json")

# Number of seconds in one hour. VM prices are declared per hour.
SECONDS_IN_HOUR = 3600.0

ITER_NUMBER = 1


class ConfigurationError(ValueError):
    """Raised when simulation settings are missing or malformed. It is
    always raised before simulation starts.
    """

    pass


@dataclass
class Settings:
    # Maximum number of simultaneously leased VMs.
    max_vms: int = 10

    # Scaling constant between task workload and execution time.
    normalization_factor: float = 1.0

    # Network bandwidth between VMs. Used by workflow parsers for
    # deriving data transfer times.
    # Measures in megabits per second (Mbps).
    bandwidth_mbps: float = 100.0

    # Minimal interval of time for leasing VM.
    # Declared in seconds.
    billing_period: float = 3600.0

    # Ratio of standard deviation to mean of task execution time on VM.
    variance_factor_alpha: float = 0.1

    # Reserved. Accepted for compatibility with existing configs.
    deadline_factor_beta: float = 1.0
    estimation_factor_eta: float = 1.0

    # Delay for re-queueing task when no VM can be found for it.
    # Declared in seconds.
    requeue_delay: float = 1.0

    # After this number of failed placements task is put on the VM
    # which finishes it earliest, even if sub-deadline is missed.
    max_dispatch_retries: int = 50

    # Lower bound for sampled task execution time.
    # Declared in seconds.
    min_execution_time: float = 0.1

    # Seed for execution time jitter. None means non-reproducible runs.
    seed: tp.Optional[int] = None

    def validate(self) -> None:
        """Check that settings can be used for simulation.

        :return: None.
        """

        if self.max_vms < 1:
            raise ConfigurationError(
                f"maxVMs should be at least 1, got {self.max_vms}"
            )

        positive = {
            "normalizationFactor": self.normalization_factor,
            "bandwidthMbps": self.bandwidth_mbps,
            "billingPeriod": self.billing_period,
            "requeueDelay": self.requeue_delay,
            "minExecutionTime": self.min_execution_time,
        }
        for key, value in positive.items():
            if value <= 0:
                raise ConfigurationError(
                    f"{key} should be positive, got {value}"
                )

        if self.variance_factor_alpha < 0:
            raise ConfigurationError(
                f"varianceFactorAlpha should be non-negative, "
                f"got {self.variance_factor_alpha}"
            )

        if self.max_dispatch_retries < 0:
            raise ConfigurationError(
                f"maxDispatchRetries should be non-negative, "
                f"got {self.max_dispatch_retries}"
            )


# Map from key in config file to `Settings` field and its type.
REQUIRED_SETTINGS: dict[str, tp.Tuple[str, type]] = {
    "maxVMs": ("max_vms", int),
    "normalizationFactor": ("normalization_factor", float),
    "bandwidthMbps": ("bandwidth_mbps", float),
    "billingPeriod": ("billing_period", float),
    "varianceFactorAlpha": ("variance_factor_alpha", float),
    "deadlineFactorBeta": ("deadline_factor_beta", float),
    "estimationFactorEta": ("estimation_factor_eta", float),
}

OPTIONAL_SETTINGS: dict[str, tp.Tuple[str, type]] = {
    "requeueDelay": ("requeue_delay", float),
    "maxDispatchRetries": ("max_dispatch_retries", int),
    "minExecutionTime": ("min_execution_time", float),
    "seed": ("seed", int),
}


def _convert(key: str, value: tp.Any, value_type: type) -> tp.Any:
    # bool is a subclass of int, but `true` is never a valid number here.
    if isinstance(value, bool):
        raise ConfigurationError(f"Bad value for {key}: {value!r}")

    try:
        return value_type(value)
    except (TypeError, ValueError) as e:
        raise ConfigurationError(f"Bad value for {key}: {value!r}") from e


def parse_settings(data: dict[str, tp.Any]) -> Settings:
    """Build settings from `simulation` section of config file.

    :param data: map from option name to its value.
    :return: validated settings.
    """

    if not isinstance(data, dict):
        raise ConfigurationError("Simulation parameters should be an object")

    kwargs: dict[str, tp.Any] = dict()

    for key, (field, value_type) in REQUIRED_SETTINGS.items():
        if key not in data:
            raise ConfigurationError(f"Missing required setting {key}")

        kwargs[field] = _convert(key, data[key], value_type)

    for key, (field, value_type) in OPTIONAL_SETTINGS.items():
        if data.get(key) is None:
            continue

        kwargs[field] = _convert(key, data[key], value_type)

    settings = Settings(**kwargs)
    settings.validate()

    return settings


def load_settings(filename: str) -> Settings:
    """Load simulation settings from json file. Settings are expected
    under `simulation` key.

    :param filename: json file with configuration.
    :return: validated settings.
    """

    try:
        with open(filename) as f:
            json_data = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        raise ConfigurationError(
            f"Failed to load simulation config {filename}: {e}"
        ) from e

    if not isinstance(json_data, dict) or "simulation" not in json_data:
        raise ConfigurationError(
            f"Config {filename} has no `simulation` section"
        )

    return parse_settings(json_data["simulation"])
