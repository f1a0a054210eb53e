from .fix_service import FixService, parse_line_fix_data
from .lidar_service import LidarService, parse_line_lidar_data
from .map_loader import load_map
