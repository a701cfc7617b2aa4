from sqllibrarian.adapters.dbapi import DBAPIConnection, PreparedStatement, parameter_style_for

__all__ = ("DBAPIConnection", "PreparedStatement", "parameter_style_for")
