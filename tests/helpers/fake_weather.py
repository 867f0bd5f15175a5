import numpy as np
import xarray as xr


START = "2025-11-05T00:00:00"


def make_fake_weather_ds(
    times=4,
    shape=(4, 8),
    start=START,
    step_hours=6,
    time_name="datetime",
    drop=(),
):
    """
    Create a small in-memory dataset laid out like the prediction store:
    (datetime, lat, lon) variables for temperature, rain, pressure and
    10 m wind components, plus datetime/lat/lon coordinates.
    """
    nlat, nlon = shape
    datetime = (
        np.datetime64(start, "ns")
        + np.arange(times) * np.timedelta64(step_hours, "h")
    )
    lat = np.linspace(-90.0, 90.0, nlat)
    lon = np.linspace(0.0, 360.0, nlon, endpoint=False)

    base = np.arange(nlat * nlon, dtype=np.float32).reshape(shape)
    temperature = np.stack([250.0 + base + 10.0 * t for t in range(times)]).astype(np.float32)

    rain = np.stack([base * 0.1 + t for t in range(times)]).astype(np.float32)
    rain[:, 0, :] = np.nan

    pressure = np.full((times, nlat, nlon), 101325.0, dtype=np.float32)

    u_row = np.linspace(-20.0, 20.0, nlon, dtype=np.float32)
    u = np.broadcast_to(u_row, (times, nlat, nlon)).copy()
    v = -u

    dims = (time_name, "lat", "lon")
    data_vars = {
        "2m_temperature": (dims, temperature),
        "total_precipitation_6hr": (dims, rain),
        "mean_sea_level_pressure": (dims, pressure),
        "10m_u_component_of_wind": (dims, u),
        "10m_v_component_of_wind": (dims, v),
    }
    for name in drop:
        data_vars.pop(name)

    return xr.Dataset(
        data_vars=data_vars,
        coords={time_name: datetime, "lat": lat, "lon": lon},
    )
