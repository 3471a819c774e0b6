"""crudforge: generic repositories, a bulk engine and CRUD handlers over SQLAlchemy."""

__version__ = "0.1.0"
