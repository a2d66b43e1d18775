"""
Per-event reconstruction of ep → e'p'K⁺K⁻ (φ → K⁺K⁻)

Three hypotheses share one column graph: full detection, missing K⁻ and
missing K⁺. See phi_analysis.modules.channels.
"""

__version__ = "0.1.0"
