import yaml
import os

def load_config(file_path):
    """Load and return the configuration from a YAML file.

    Args:
        file_path (str): The path to the YAML configuration file.

    Returns:
        dict: The configuration data as a dictionary, empty when the file has no content.
    """
    with open(file_path, 'r') as file:
        return yaml.safe_load(file) or {}

# Default configuration path, the file shipped next to this module unless CONFIG_PATH points elsewhere
PACKAGED_CONFIG_PATH = os.path.join(os.path.dirname(os.path.abspath(__file__)), 'engine_config.yaml')

def default_config_path():
    return os.environ.get('CONFIG_PATH', PACKAGED_CONFIG_PATH)

def get_config(section=None, name=None, path=None):
    """
    Get configuration by loading the YAML file from a given path. Optionally return a specific section.
    The 'facilities' section is a list of per-facility overrides, so a 'name' must be specified for it.

    Args:
        section (str, optional): Specific section of the configuration to return.
        name (str, optional): Name of the facility to return if section is 'facilities'.
        path (str, optional): The path to the configuration file, defaults to default_config_path().

    Returns:
        dict: The requested part of the configuration data, or the entire configuration if no section is specified.
        Raises an exception if the section is 'facilities' and no name is provided, or if the name does not exist.
    """
    config = load_config(path or default_config_path())
    if section:
        try:
            section_data = config[section]
        except KeyError:
            raise KeyError(f"Section '{section}' not found in the configuration.")

        if section == 'facilities':
            if not name:
                raise ValueError("Name must be specified for facility access.")
            return find_facility(section_data, name)

        return section_data

    return config

def find_facility(facilities, name):
    """Return the entry of the named facility from a 'facilities' list, raising KeyError when it is missing."""
    try:
        return next(facility for facility in facilities or [] if facility['name'] == name)
    except StopIteration:
        raise KeyError(f"Facility with name '{name}' not found.")

def facility_tolerance(config, name, default):
    """
    Resolve the reconciliation tolerance of a facility from an already loaded configuration.

    Args:
        config (dict): The configuration data as returned by get_config().
        name (str): Name of the facility, may be None.
        default (float): Tolerance percent used when the facility has no override.

    Returns:
        float: The facility's tolerance_percent, or default when the facility is not listed or has no override.
    """
    if not name:
        return default
    try:
        facility = find_facility(config.get('facilities'), name)
    except KeyError:
        return default
    return facility.get('tolerance_percent', default)
