import logging
import requests

from analytics.errors import UpstreamFailure

logger = logging.getLogger(__name__)


def fetch_exchange_rates(base_currency, preferred_currencies, api_key, base_url, timeout=10):
    """Look up today's rates for ``preferred_currencies`` relative to ``base_currency``.

    Codes the rate service does not know are left out. Any network, HTTP or
    payload problem raises UpstreamFailure with the upstream message.
    """
    url = f"{base_url.rstrip('/')}/{api_key}/latest/{base_currency}"
    try:
        response = requests.get(url, timeout=timeout)
        response.raise_for_status()
        data = response.json()
    except (requests.RequestException, ValueError) as e:
        logger.warning("Exchange rate lookup for %s failed: %s", base_currency, e)
        raise UpstreamFailure(str(e)) from e

    conversion_rates = data.get('conversion_rates') if isinstance(data, dict) else None
    if not conversion_rates:
        raise UpstreamFailure('Failed to fetch exchange rates')

    rates = {code: conversion_rates[code] for code in preferred_currencies if code in conversion_rates}
    return {'baseCurrency': base_currency, 'exchangeRates': rates}
