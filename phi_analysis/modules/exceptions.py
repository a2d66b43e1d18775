#!/usr/bin/env python3
"""
Custom exceptions for the ep → e'p'K⁺K⁻ reconstruction pipeline

Provides a hierarchy of exceptions for better error handling and diagnostics.
All custom exceptions inherit from AnalysisError for easy catching.
"""


class AnalysisError(Exception):
    """
    Base exception for all analysis pipeline errors

    All custom exceptions inherit from this class, allowing users to catch
    all analysis-specific errors with a single except clause.
    """
    pass


class ConfigurationError(AnalysisError):
    """
    Raised when configuration is invalid or missing required fields

    Examples:
    - Missing required config file
    - Unknown φ-daughter policy or channel name
    - Missing required config sections
    """
    pass


class DataLoadError(AnalysisError):
    """
    Raised when event files cannot be loaded

    Examples:
    - File not found
    - Corrupted ROOT file
    - Missing tree in ROOT file
    """
    pass


class BranchMissingError(AnalysisError):
    """
    Raised when a required branch is not found in the events

    Examples:
    - Missing REC::Particle bank column (e.g. REC_Particle_pid)
    - Branch name typo in configuration
    """
    def __init__(self, branch_name: str, file_path: str = None):
        """
        Initialize BranchMissingError

        Args:
            branch_name: Name of the missing branch
            file_path: Optional path to the file being read
        """
        self.branch_name = branch_name
        self.file_path = file_path

        message = f"Required branch '{branch_name}' not found"
        if file_path:
            message += f" in file: {file_path}"

        super().__init__(message)


class GraphOrderError(AnalysisError):
    """
    Raised when a column graph stage breaks dependency order

    Examples:
    - Stage consumes a column that no earlier stage defines
    - Stage redefines an existing column
    """
    pass
