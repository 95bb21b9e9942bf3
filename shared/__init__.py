"""Models, constants, configuration and errors shared by the transfer tool."""
