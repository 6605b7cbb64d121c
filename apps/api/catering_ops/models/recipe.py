"""
Recipe and recipe-instruction documents.

Both are free-form JSON documents authored in the admin UI. The row key of a
recipe is the slug of its name (see ``catering_ops.core.naming.slugify``);
``recipe_data.recipe_id`` must always equal the row key.
"""
from sqlalchemy import Column, Integer, String, DateTime, Index
from sqlalchemy.sql import func

from catering_ops.db.base import Base, JSONDocument


class Recipe(Base):
    __tablename__ = "recipes"

    recipe_id = Column(String(255), primary_key=True)
    name = Column(String(255), nullable=False)
    recipe_data = Column(JSONDocument, nullable=False)
    version = Column(Integer, nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    __mapper_args__ = {"version_id_col": version}

    __table_args__ = (
        Index('idx_recipes_name', 'name'),
    )


class RecipeInstruction(Base):
    __tablename__ = "recipe_instructions"

    instruction_id = Column(String(255), primary_key=True)
    recipe_name = Column(String(255), nullable=False)
    instruction_data = Column(JSONDocument, nullable=False)
    version = Column(Integer, nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    __mapper_args__ = {"version_id_col": version}
