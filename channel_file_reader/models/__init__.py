from .records import (
    AnalysisElement,
    BscanElement,
    BscanRecord,
    Calibration,
    CalibrationEntry,
    ChannelFile,
    DepthProfileElement,
    Dfp,
    DfpWallThicknessMeasurement,
    ExtendedIndication,
    Header,
    Indication,
    OverridableLocation,
    ReportableElement,
    RescanElement,
    RescanRecord,
    RolledJoint,
    RolledJoints,
    ScanFileRecord,
)

__all__ = [
    "AnalysisElement",
    "BscanElement",
    "BscanRecord",
    "Calibration",
    "CalibrationEntry",
    "ChannelFile",
    "DepthProfileElement",
    "Dfp",
    "DfpWallThicknessMeasurement",
    "ExtendedIndication",
    "Header",
    "Indication",
    "OverridableLocation",
    "ReportableElement",
    "RescanElement",
    "RescanRecord",
    "RolledJoint",
    "RolledJoints",
    "ScanFileRecord",
]
