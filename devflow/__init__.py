"""devflow: tracks features through the 4-step reviewed workflow.

Test Stubs -> Architecture -> Object Design -> Implementation, one reviewed
change-set per stage.
"""
