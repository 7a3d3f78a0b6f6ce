import importlib.util
from pathlib import Path
from typing import Optional, Union


def load_module(script_path: Union[str, Path], module_name: Optional[str] = None):
    """Import a Python file as a module without it being on sys.path."""
    script_path = Path(script_path)
    spec = importlib.util.spec_from_file_location(
        module_name or script_path.stem, script_path
    )
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module
