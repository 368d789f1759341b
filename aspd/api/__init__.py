"""HTTP tool-dispatch surface for the ASPD engine."""
