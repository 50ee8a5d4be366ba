from .instance import VM, VMType, State
from .manager import Manager, load_vm_types, parse_vm_types
