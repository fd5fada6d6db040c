"""auth/ -- Authentication, authorization and registration package for StaffDesk.

Layer rule: auth/ imports only core/, stdlib, and third-party libraries.
It does NOT import from api/ or org/.
api/ imports from auth/, not the other way around.
"""
