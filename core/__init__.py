# Core module initialization
# Export core modules so they can be imported from core.*

from .mask_refinement import MaskRefinementOrchestrator, RefinementResult, refine
from . import refinement_config
from . import batch_refinement
