# murshid/schemas/__init__.py
"""
Schema module initialization.
Exports all schema classes from submodules for convenient imports.
"""
from .auth import *
from .conversation import *
from .result import *
from .user import *
