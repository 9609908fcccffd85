"""
Back-office services.

Cross-module coordinators that sit between the kernel and the module
services.  Currently the workflow executor (transition lookup and guard
evaluation shared by every document lifecycle).
"""
