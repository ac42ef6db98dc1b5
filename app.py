from bookshop import create_app
from bookshop.seed import seed_sample_data

app = create_app()

# --- Run the development server ---
if __name__ == '__main__':
    # --- SAMPLE DATA (SEEDING) ---
    with app.app_context():
        added = seed_sample_data()
        print(f"Successfully added {added} books.")
    app.run(debug=True)
