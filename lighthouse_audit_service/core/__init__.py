"""
Shared, cross-cutting code for the service.

`core/` holds the small building blocks the bootstrap and every resource
package use (DB wiring, settings, logging, errors, middleware). Keep
resource-specific SQL and handlers in the resource package (e.g. `audits/`).
"""
