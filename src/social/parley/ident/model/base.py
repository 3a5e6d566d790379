from sqlalchemy import LargeBinary, String, orm

from typing_extensions import Annotated

str256 = Annotated[str, 256]
str512 = Annotated[str, 512]
bytes64 = Annotated[bytes, 64]


class Base(orm.DeclarativeBase):
    type_annotation_map = {
        str256: String(256),
        str512: String(512),
        bytes64: LargeBinary(64),
    }
