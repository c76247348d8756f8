"""
Configuration constants to replace magic numbers throughout bugsgraph
"""

# Emitted node defaults
DEFAULT_NODE_VALUE = 0.0  # Default value of a node that does not resolve at compile time

# Array indexing constants (BUGS arrays are 1-based)
ARRAY_INDEX_BASE = 1
FULL_RANGE_DEFAULT_EXTENT = 1  # Extent allocated for `x[]`/`x[:]` on first reference
CELL_NAME_FORMAT = "{name}[{indices}]"
CELL_INDEX_SEPARATOR = ","

# Variable elimination
EVIDENCE_NORMAL_SCALE = 0.1  # Standard deviation of the point-mass-like factor for observed normals

# Special functions rewritten against the matching stochastic statement
CUMULATIVE_FUNCTION = "cumulative"
DENSITY_FUNCTION = "density"
DEVIANCE_FUNCTION = "deviance"

# Environment variables
COLOR_ENV_VAR = "BUGSGRAPH_COLOR"
DUMP_TREE_ENV_VAR = "BUGSGRAPH_DUMP_TREE"
DUMP_TREE_DIR = "tree_dumps"

# File encoding constants
DEFAULT_FILE_ENCODING = "utf-8"
