"""
Pure booking/event rules. Nothing in this package performs I/O; every
time-dependent function takes `now` explicitly.
"""
