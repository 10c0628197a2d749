# quantum_sim/bigquery/datasets.py

"""
Public BigQuery datasets used to ground scenarios in real market data,
plus the SQL we run against them.

Query builders return (sql, params) so that user-supplied values are
sent as query parameters rather than pasted into the SQL text.
"""

from typing import Any, Dict, List, Optional, Tuple

Query = Tuple[str, Dict[str, Any]]

PUBLIC_DATASETS = {
    'GOOGLE_ANALYTICS': {
        'project': 'bigquery-public-data',
        'dataset': 'google_analytics_sample',
        'tables': {'sessions': 'ga_sessions_*'},
        'description': 'Real e-commerce data from Google Merchandise Store (Aug 2016 - Aug 2017)',
        'use_case': 'E-commerce performance analysis, conversion optimization, customer behavior',
    },
    'GOOGLE_TRENDS': {
        'project': 'bigquery-public-data',
        'dataset': 'google_trends',
        'tables': {
            'top_terms': 'top_terms',
            'top_rising_terms': 'top_rising_terms',
            'international_top_terms': 'international_top_terms',
        },
        'description': 'Global search trends data with market timing signals',
        'use_case': 'Market timing analysis, consumer interest trends, demand forecasting',
    },
    'BLS_QCEW': {
        'project': 'bigquery-public-data',
        'dataset': 'bls',
        'tables': {'qcew': 'qcew_*'},
        'description': 'Quarterly Census of Employment and Wages (1990-present)',
        'use_case': 'Labor market analysis, wage trends, economic indicators',
    },
    'CENSUS_ACS': {
        'project': 'bigquery-public-data',
        'dataset': 'census_bureau_acs',
        'tables': {
            'county': 'county_*',
            'state': 'state_*',
            'zip_codes': 'zip_codes_*',
        },
        'description': 'American Community Survey demographic data',
        'use_case': 'Market sizing, demographic analysis, location planning',
    },
    'FRED_ECONOMIC': {
        'project': 'bigquery-public-data',
        'dataset': 'fred',
        'tables': {'series': 'series'},
        'description': 'Federal Reserve Economic Data',
        'use_case': 'Economic forecasting, market conditions analysis',
    },
}

INDUSTRY_DATASET_MAPPING = {
    'technology': ['GOOGLE_ANALYTICS', 'GOOGLE_TRENDS'],
    'ecommerce': ['GOOGLE_ANALYTICS', 'GOOGLE_TRENDS'],
    'retail': ['GOOGLE_ANALYTICS', 'CENSUS_ACS'],
    'manufacturing': ['BLS_QCEW', 'CENSUS_ACS'],
    'finance': ['BLS_QCEW', 'FRED_ECONOMIC'],
    'healthcare': ['CENSUS_ACS', 'BLS_QCEW'],
    'education': ['CENSUS_ACS', 'BLS_QCEW'],
    'default': ['GOOGLE_TRENDS', 'CENSUS_ACS'],
}

# NAICS supersector codes we look at for labour-market grounding
INDUSTRY_CODES = {
    'manufacturing': ['31-33'],
    'finance': ['52'],
    'healthcare': ['62'],
    'education': ['61'],
}


def get_relevant_datasets(industry: str) -> List[Dict[str, Any]]:
    """Datasets worth consulting for an industry."""
    keys = INDUSTRY_DATASET_MAPPING.get(
        (industry or '').lower(), INDUSTRY_DATASET_MAPPING['default'])
    return [PUBLIC_DATASETS[k] for k in keys]


class DatasetQueryBuilder:
    """SQL for the public datasets above."""

    @staticmethod
    def ecommerce_monthly_revenue() -> Query:
        return """
            WITH monthly_revenue AS (
              SELECT
                EXTRACT(MONTH FROM PARSE_DATE('%Y%m%d', date)) AS month,
                EXTRACT(YEAR FROM PARSE_DATE('%Y%m%d', date)) AS year,
                channelGrouping,
                AVG(totals.totalTransactionRevenue / 1000000) AS avg_revenue,
                COUNT(DISTINCT fullVisitorId) AS unique_visitors,
                SUM(totals.visits) AS total_visits
              FROM `bigquery-public-data.google_analytics_sample.ga_sessions_*`
              WHERE totals.totalTransactionRevenue IS NOT NULL
              GROUP BY month, year, channelGrouping
            )
            SELECT
              month,
              AVG(avg_revenue) AS monthly_revenue,
              AVG(unique_visitors) AS monthly_visitors,
              AVG(total_visits) AS monthly_visits,
              STDDEV(avg_revenue) AS revenue_volatility
            FROM monthly_revenue
            GROUP BY month
            ORDER BY month
        """, {}

    @staticmethod
    def employment_analysis(industry_codes: List[str]) -> Query:
        params = {f'code{i}': code for i, code in enumerate(industry_codes)}
        placeholders = ', '.join(f'@{name}' for name in params) or "''"
        return f"""
            SELECT
              area_fips, area_title, industry_code, industry_title,
              year, quarter, avg_wkly_wage,
              month3_emplvl AS employment_level,
              total_qtrly_wages
            FROM `bigquery-public-data.bls.qcew_*`
            WHERE industry_code IN ({placeholders})
            AND year >= 2020
            ORDER BY year DESC, quarter DESC, avg_wkly_wage DESC
            LIMIT 50
        """, params

    @staticmethod
    def demographic_analysis(population_min: int = 50000) -> Query:
        return """
            SELECT
              geo_id, total_pop, median_age, median_income,
              unemployment_rate, households, housing_units,
              CASE
                WHEN median_income > 75000 AND unemployment_rate < 5 THEN 'High-value market'
                WHEN median_income > 50000 AND unemployment_rate < 8 THEN 'Moderate-value market'
                ELSE 'Emerging market'
              END AS market_classification
            FROM `bigquery-public-data.census_bureau_acs.county_2020_5yr`
            WHERE total_pop >= @population_min
            ORDER BY median_income DESC, total_pop DESC
            LIMIT 50
        """, {'population_min': int(population_min)}

    @staticmethod
    def analytics_similar_cases() -> Query:
        return """
            SELECT
              channelGrouping AS company,
              'E-commerce' AS industry,
              CONCAT('Traffic pattern analysis for ', channelGrouping) AS scenario,
              CASE
                WHEN AVG(totals.totalTransactionRevenue / 1000000) > 100
                  THEN 'High revenue performance with strong conversion rates'
                WHEN AVG(totals.totalTransactionRevenue / 1000000) > 50
                  THEN 'Moderate revenue with room for optimization'
                ELSE 'Lower revenue requiring strategic intervention'
              END AS outcome,
              RAND() * 0.3 + 0.6 AS similarity,
              EXTRACT(YEAR FROM PARSE_DATE('%Y%m%d', date)) AS year
            FROM `bigquery-public-data.google_analytics_sample.ga_sessions_*`
            WHERE totals.totalTransactionRevenue IS NOT NULL
            GROUP BY channelGrouping, year
            HAVING COUNT(*) > 100
            ORDER BY similarity DESC
            LIMIT 5
        """, {}

    @staticmethod
    def trends_similar_cases() -> Query:
        return """
            SELECT
              'Market Trend Analysis' AS company,
              'Technology' AS industry,
              CONCAT('Search trend analysis for ', term) AS scenario,
              CASE
                WHEN score > 80 THEN 'High market interest led to successful timing'
                WHEN score > 50 THEN 'Moderate interest with mixed results'
                ELSE 'Low interest suggesting poor timing'
              END AS outcome,
              RAND() * 0.4 + 0.5 AS similarity,
              EXTRACT(YEAR FROM week) AS year
            FROM `bigquery-public-data.google_trends.top_terms`
            WHERE term LIKE '%business%' OR term LIKE '%startup%' OR term LIKE '%launch%'
            GROUP BY term, year, score
            ORDER BY score DESC
            LIMIT 3
        """, {}


def market_data_query(industry: str) -> Optional[Query]:
    """The real-data query that grounds timelines for an industry, if any."""
    industry = (industry or '').lower()
    if industry in ('ecommerce', 'technology'):
        return DatasetQueryBuilder.ecommerce_monthly_revenue()
    if industry == 'retail':
        return DatasetQueryBuilder.demographic_analysis()
    if industry in INDUSTRY_CODES:
        return DatasetQueryBuilder.employment_analysis(INDUSTRY_CODES[industry])
    return None


DEMO_QUERIES = {
    'LAUNCH_TIMING': {
        'query': 'What if we launched our e-commerce platform during Q4 instead of Q1?',
        'context': {
            'industry': 'ecommerce',
            'companySize': 'startup',
            'timeframe': '2016-2017',
            'region': 'North America',
            'businessModel': 'B2C E-commerce',
        },
        'datasets': ['GOOGLE_ANALYTICS', 'GOOGLE_TRENDS'],
    },
    'MARKET_EXPANSION': {
        'query': 'What if we expanded to high-income counties first instead of high-population areas?',
        'context': {
            'industry': 'retail',
            'companySize': 'medium',
            'timeframe': '2020-2024',
            'region': 'United States',
            'businessModel': 'B2C Retail',
        },
        'datasets': ['CENSUS_ACS', 'BLS_QCEW'],
    },
    'PRODUCT_STRATEGY': {
        'query': 'What if we focused on mobile-first instead of desktop-first strategy?',
        'context': {
            'industry': 'technology',
            'companySize': 'startup',
            'timeframe': '2016-2017',
            'region': 'Global',
            'businessModel': 'B2C SaaS',
        },
        'datasets': ['GOOGLE_ANALYTICS', 'GOOGLE_TRENDS'],
    },
    'ECONOMIC_TIMING': {
        'query': 'What if we hired aggressively during the economic downturn instead of cutting costs?',
        'context': {
            'industry': 'technology',
            'companySize': 'medium',
            'timeframe': '2020-2024',
            'region': 'United States',
            'businessModel': 'B2B SaaS',
        },
        'datasets': ['BLS_QCEW', 'GOOGLE_TRENDS'],
    },
}
