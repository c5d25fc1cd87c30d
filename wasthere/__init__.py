"""WasThere: archiving club nights from flyers.

Year inference for partial flyer dates, fuzzy matching of extracted names,
and the vision-LLM flyer conversion workflow.
"""

__version__ = "0.1.0"
