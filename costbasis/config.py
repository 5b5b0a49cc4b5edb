"""
INI configuration for database connections.
"""
import os
import configparser
import logging


CONFIG_DIR = os.path.join(os.path.expanduser("~"), ".config", "costbasis")
CONFIG_PATH = os.environ.get(
    "COSTBASIS_CONFIG", os.path.join(CONFIG_DIR, "costbasis.cfg")
)


class CostbasisConfig(configparser.ConfigParser):
    def make_default(self):
        self["db"] = {
            "dialect": "postgresql",
            "driver": "psycopg2",
            "username": "",
            "password": "T0PS3CR3T",
            "host": "localhost",
            "port": "5432",
            "database": "costbasis",
        }
        self["test"] = {"dialect": "sqlite"}

    @property
    def db_uri(self):
        return self._make_db_uri(**self["db"])

    @property
    def test_db_uri(self):
        return self._make_db_uri(**self["test"])

    def _make_db_uri(self, **kwargs):
        schema = "{dialect}"
        if kwargs.get("driver", None):
            schema += "+{driver}"

        credentials = ""
        if kwargs.get("username", None):
            credentials = "{username}"
            if kwargs.get("password", None):
                credentials += ":{password}"

        authority = ""
        if kwargs.get("host", None):
            authority = "@{host}"
            if kwargs.get("port", None):
                authority += ":{port}"
        elif credentials:
            credentials += "@"

        db = ""
        if kwargs.get("database", None):
            db = "/{database}"

        template = "{schema}://{credentials}{authority}{db}".format(
            schema=schema, credentials=credentials, authority=authority, db=db
        )
        return template.format(**kwargs)


CONFIG = CostbasisConfig()


# If no config exists, generate & write defaults
if os.path.exists(CONFIG_PATH):
    CONFIG.read(CONFIG_PATH)
else:
    CONFIG.make_default()
    try:
        os.makedirs(os.path.dirname(CONFIG_PATH), exist_ok=True)
        with open(CONFIG_PATH, "w") as configfile:
            CONFIG.write(configfile)
    except OSError as err:
        logging.warning("Can't write default config to %s: %s", CONFIG_PATH, err)
