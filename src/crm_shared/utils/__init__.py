from crm_shared.utils.paths import get_path, join_path, split_path
from crm_shared.utils.serialization import dumps, loads, loads_or_raw

__all__ = ["get_path", "join_path", "split_path", "dumps", "loads", "loads_or_raw"]
