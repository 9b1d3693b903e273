"""Clarity — research jobs that produce InsightData, and history exports.

    from clarity.research import ResearchJobController
    from clarity.export import export
"""

__version__ = "0.1.0"
