"""practactl - command-line front end for the practa toolchain."""
