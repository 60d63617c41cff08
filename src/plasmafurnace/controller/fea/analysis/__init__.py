"""Analysis: heat sources, field state and energy bookkeeping."""
