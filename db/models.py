# WORKFLOW: Database model for the priced items table.
# Used by: Import pipeline, export pipeline, aggregate query
# Models represent:
# 1. prices - one row per priced item, id supplied by the uploaded CSV
#
# Data flow: ZIP of CSV -> Import pipeline -> prices -> Export pipeline -> ZIP of CSV

from sqlalchemy import BigInteger, Column, Date, Index, Numeric, Text
from sqlalchemy.orm import declarative_base

Base = declarative_base()


class PriceRecord(Base):
    __tablename__ = "prices"

    id = Column(BigInteger, primary_key=True, autoincrement=False)
    name = Column(Text, nullable=False)
    category = Column(Text, nullable=False)
    price = Column(Numeric(12, 2), nullable=False)
    create_date = Column(Date, nullable=False)

    __table_args__ = (
        Index('idx_prices_category', 'category'),
    )

    def __repr__(self) -> str:
        return f"<PriceRecord id={self.id} category={self.category!r} price={self.price}>"
