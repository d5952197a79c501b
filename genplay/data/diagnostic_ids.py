"""Identifiers of the diagnostics produced by the compiler and the generator driver."""

SYNTAX_ERROR = "GP0001"
COMPILE_ERROR = "GP0002"
UNRESOLVED_MODULE = "GP0003"
UNRESOLVED_NAME = "GP0004"
RELATIVE_IMPORT = "GP0005"
DUPLICATE_MODULE = "GP0006"
COMPILER_WARNING = "GP0007"

GENERATOR_INITIALIZATION_FAILED = "GP1001"
GENERATOR_EXECUTION_FAILED = "GP1002"
SYNTAX_RECEIVER_FAILED = "GP1003"

EMIT_FAILED = "GP2001"
