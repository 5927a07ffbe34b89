SAMPLE_DEALS_CSV = """deal_id,deal_name,acquisition_date,total_units,purchase_price,renovation_budget,market_value,debt_amount,status,property_type,location
D001,Sunset Apartments,2024-01-15,48,2400000,300000,3200000,1800000,Active,Multifamily,Austin
D002,Harbor View,2024-03-20,72,4200000,450000,5500000,3000000,Active,Multifamily,Miami
D003,Green Valley,2023-11-10,36,1800000,200000,2400000,1300000,Closed,Multifamily,Denver
"""

SAMPLE_UNITS_CSV = """unit_id,deal_id,unit_number,bedrooms,bathrooms,sq_ft,current_rent,market_rent,occupancy_status
U001,D001,101,1,1,650,1200,1300,Occupied
U002,D001,102,2,2,900,1600,1700,Occupied
U003,D001,103,1,1,650,1200,1300,Vacant
U004,D002,201,2,1,850,1500,1650,Occupied
U005,D002,202,3,2,1200,2200,2400,Occupied
U006,D003,301,1,1,600,1100,1250,Occupied
"""

SAMPLE_FINANCIALS_CSV = """financial_id,deal_id,period,gross_rent,operating_expenses,noi,capex,debt_service
F001,D001,2024-Q1,57600,18500,39100,8000,22500
F002,D001,2024-Q2,58200,19000,39200,7500,22500
F003,D002,2024-Q1,108000,35000,73000,15000,37500
F004,D003,2023-Q4,39600,13500,26100,5000,16250
"""
