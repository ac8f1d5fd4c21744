"""
Exam hall seat allocation.
"""
from .models import Student, Hall, Allocation
from .engine import SeatingEngine, EngineConfig, allocate
from .exceptions import SeatingError, CapacityError, MalformedRosterError, HallLayoutError

__version__ = "0.1.0"
