# Garment module initialization
# Export garment description modules so they can be imported from garment.*

from . import models
from . import style_hints
from . import proportion_templates
from . import preserve_zones
