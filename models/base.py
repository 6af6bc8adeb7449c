from sqlalchemy import MetaData
import enum

# Metadata for tables owned by the sink itself (target tables are created
# from raw DDL by the dialects and never registered here)
metadata = MetaData()


# ============================================================================
# ENUMS
# ============================================================================

class CdcOperation(str, enum.Enum):
    """Row-level change derived from the journal entry type"""
    INSERT = "INSERT"
    UPDATE = "UPDATE"
    DELETE = "DELETE"
    UPSERT = "UPSERT"  # codes that may be either an insert or an update


class FieldType(str, enum.Enum):
    """Abstract field types carried by record schemas"""
    INT8 = "int8"
    INT16 = "int16"
    INT32 = "int32"
    INT64 = "int64"
    FLOAT32 = "float32"
    FLOAT64 = "float64"
    BOOLEAN = "boolean"
    STRING = "string"
    BYTES = "bytes"
    ARRAY = "array"
    MAP = "map"
    STRUCT = "struct"
