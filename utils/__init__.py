# Utils module initialization
# Export utility modules so they can be imported from utils.*

from . import errors
from . import geometry
from . import raster_image
