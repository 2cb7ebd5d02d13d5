"""Buffered, timeout aware tubes for scripting interactive processes.

The main objects are found in:

    tubeio.io.tube       The Tube and its receive functions.
    tubeio.io.endpoint   Endpoints, the things tubes talk to.
    tubeio.os.process    Tubes that run a program.
    tubeio.os.time       The waits all blocking tube functions are built on.
"""
