from sqlalchemy import String, orm
from sqlalchemy.orm import mapped_column

from typing_extensions import Annotated

str255 = Annotated[str, 255]
str1024 = Annotated[str, 1024]
guidpk = Annotated[str, mapped_column(String(32), primary_key=True)]


class Base(orm.DeclarativeBase):
    type_annotation_map = {
        str255: String(255),
        str1024: String(1024),
        guidpk: String(32),
    }
