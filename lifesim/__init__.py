"""Life simulator game core: event selection, choice resolution, achievements, saves."""
