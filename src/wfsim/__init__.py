import wfsim.workflows
import wfsim.vms
import wfsim.schedulers

from .config import LOGS_DIR, ConfigurationError, Settings, load_settings
from .metric_collector import MetricCollector, Stats
from .simulator import Simulator
