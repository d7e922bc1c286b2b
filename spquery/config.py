"""
Configuration file handling.

A configuration file is a JSON or YAML mapping from section names to
sections.  A section holds connection parameters prefixed with
``spquery_`` (``spquery_url``, ``spquery_timeout``, ...), may
``inherits`` another section, and may be a "meta" section that
``contains`` a list of other sections::

    {
        "default": {"spquery_url": "https://sp.example.com/sites/team"},
        "archive": {"inherits": "default", "spquery_url": "https://sp.example.com/sites/archive"},
        "all": {"contains": ["default", "archive"]}
    }
"""
import json
import logging
import os
from fnmatch import fnmatch

import yaml

CONFIG_FILES = (
    "{cfgdir}/spquery/spquery.conf",
    "{cfgdir}/spquery/spquery.yaml",
    "{cfgdir}/spquery/spquery.json",
    "{cfgdir}/spquery.conf",
    "/etc/spquery.conf",
    "/etc/spquery/spquery.conf",
)


def expand_config_section(config, section="default", blacklist=None):
    """
    In the "normal" case, will return [ section ]

    We allow:

    * * includes all sections in config file
    * "Meta"-sections in the config file with the keyword "contains" followed by a list of section names
    * Recursive "meta"-sections
    * Glob patterns (team_* for all sections starting with team_)
    * Glob patterns in "meta"-sections
    """
    if section == "*":
        return [x for x in config if not config[x].get("disable", False)]

    ## not a glob pattern
    if set(section).isdisjoint(set("[*?")):
        if section not in config:
            return []
        ## "meta section" with the "contains" keyword
        if "contains" in config[section]:
            results = []
            if not blacklist:
                blacklist = set()
            blacklist.add(section)
            for subsection in config[section]["contains"]:
                if subsection not in results and subsection not in blacklist:
                    for recursivesubsection in expand_config_section(
                        config, subsection, blacklist
                    ):
                        if recursivesubsection not in results:
                            results.append(recursivesubsection)
            return results
        if config[section].get("disable", False):
            return []
        return [section]

    ## section name is a glob pattern
    results = []
    for s in (x for x in config if fnmatch(x, section)):
        if set(s).isdisjoint(set("[*?")):
            expanded = expand_config_section(config, s)
        else:
            ## Section names shouldn't contain []?* ... but in case they do ... don't recurse
            expanded = [s]
        results.extend(x for x in expanded if x not in results)
    return results


def config_section(config, section="default"):
    if section in config and "inherits" in config[section]:
        ret = config_section(config, config[section]["inherits"])
    else:
        ret = {}
    if section in config:
        ret.update(config[section])
    return ret


def read_config(fn, interactive_error=False):
    if not fn:
        cfgdir = f"{os.environ.get('HOME', '/')}/.config"
        for config_file in CONFIG_FILES:
            cfg = read_config(config_file.format(cfgdir=cfgdir))
            if cfg:
                return cfg
        return None

    try:
        try:
            with open(fn, "rb") as config_file:
                return json.load(config_file)
        except json.decoder.JSONDecodeError:
            try:
                with open(fn, "rb") as config_file:
                    return yaml.load(config_file, yaml.SafeLoader)
            except yaml.YAMLError:
                logging.error(
                    f"config file {fn} exists but is neither valid json nor yaml.  Check the syntax."
                )
    except FileNotFoundError:
        logging.info("no config file found")
    except ValueError:
        if interactive_error:
            logging.error(
                "error in config file.  Be aware that the interactive configuration will ignore and overwrite the current broken config file",
                exc_info=True,
            )
        else:
            logging.error("error in config file.  It will be ignored", exc_info=True)
    return {}


def connection_params(section):
    """The ``spquery_`` keys of a config section, without the prefix."""
    params = {}
    for k in section:
        if k.startswith("spquery_") and section[k] not in (None, ""):
            params[k[8:]] = section[k]
    return params
