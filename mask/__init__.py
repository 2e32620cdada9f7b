# Mask module initialization
# Export mask modules so they can be imported from mask.*

from . import mask_operations
from . import mask_enhancement
from . import mask_analysis
from . import color_analysis
from . import edge_erosion
from . import hollow_compositor
from . import mask_utils
