"""State layer.

Liveness tracking, mode resolution and the bounded reading history.  This
package is the single owner of how contact timestamps become a mode.
"""
